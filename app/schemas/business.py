"""
Business Schemas
Typed view of the brand configuration stored on a business row.
"""

from typing import Optional, List, Dict, Any

from app.schemas.base import CamelModel


class BrandColors(CamelModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None


class BrandVoice(CamelModel):
    tone: Optional[str] = None
    archetype: Optional[str] = None
    tone_pills: List[str] = []
    keywords: List[str] = []
    negative_keywords: List[str] = []
    slogan: Optional[str] = None


class OpeningHours(CamelModel):
    day: str
    open: Optional[str] = None
    close: Optional[str] = None
    closed: bool = False


class BusinessProfile(CamelModel):
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    public_location_label: Optional[str] = None
    operating_mode: Optional[str] = None
    service_area: Optional[str] = None
    booking_url: Optional[str] = None
    timezone: Optional[str] = None
    hours: List[OpeningHours] = []
    website: Optional[str] = None


class AdPreferences(CamelModel):
    target_audience: Optional[str] = None
    goals: Optional[str] = None
    compliance_text: Optional[str] = None
    preferred_cta: Optional[str] = None
    target_language: Optional[str] = None


class BrandProfile(CamelModel):
    """Business snapshot handed to the prompt template."""
    id: str
    name: str
    type: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    currency: str = "USD"
    colors: BrandColors = BrandColors()
    voice: BrandVoice = BrandVoice()
    profile: BusinessProfile = BusinessProfile()
    ad_preferences: AdPreferences = AdPreferences()
    offerings: List[Dict[str, Any]] = []
    logo_url: Optional[str] = None

    @classmethod
    def from_business(cls, business) -> "BrandProfile":
        """Map a Business row; JSON columns may be NULL on older rows."""
        return cls(
            id=business.id,
            name=business.name,
            type=business.type,
            industry=business.industry,
            description=business.description,
            website=business.website,
            currency=business.currency or "USD",
            colors=business.colors or {},
            voice=business.voice or {},
            profile=business.profile or {},
            ad_preferences=business.ad_preferences or {},
            offerings=business.offerings or [],
            logo_url=business.logo_url,
        )
