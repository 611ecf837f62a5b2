"""
Generate Schemas
Pydantic models for image generation requests and responses.
"""

from typing import Optional, List, Dict, Any, Union
from pydantic import Field

from app.schemas.base import CamelModel


class SubjectContext(CamelModel):
    """The product, person, or place the image is about."""
    type: Optional[str] = None  # product | service | person | location
    name: Optional[str] = None
    image_url: Optional[str] = None
    preserve_likeness: bool = False
    promotion: Optional[str] = None
    benefits: List[str] = []
    target_audience: Optional[str] = None
    price: Optional[str] = None
    is_free: bool = False
    terms_and_conditions: Optional[str] = None


class StyleReference(CamelModel):
    """A style reference image; only ones flagged active are sent to the model."""
    id: Optional[str] = None
    url: str
    is_active: bool = False


class StylePreset(CamelModel):
    """Visual style chosen for the generation."""
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    prompt_modifier: Optional[str] = None
    reference_images: List[Union[StyleReference, str]] = []
    style_cues: List[str] = []
    avoid: List[str] = []
    config: Optional[Dict[str, Any]] = None

    def active_reference_urls(self) -> List[str]:
        """Plain URL strings count as active; objects only when flagged active."""
        urls = []
        for ref in self.reference_images:
            if isinstance(ref, str):
                urls.append(ref)
            elif ref.is_active and ref.url:
                urls.append(ref.url)
        return urls


class GenerationStrategy(CamelModel):
    """Campaign strategy toggles from the generator sidebar."""
    mode: Optional[str] = None  # flash_sale | awareness | local | educational | custom
    copy_strategy: Optional[str] = None  # benefit | problem_solution | urgent | minimal
    custom_cta: Optional[str] = None
    show_price: bool = True
    show_promo: bool = True
    strict_likeness: bool = False
    trust_stack: Dict[str, bool] = {}

    class Config:
        extra = "allow"


class GenerateImageRequest(CamelModel):
    """
    Schema for POST /api/generate-image.

    business_id and prompt are optional here so that a missing value is
    answered with 400 by the handler rather than a 422 validation error.
    """
    business_id: Optional[str] = None
    prompt: Optional[str] = None
    aspect_ratio: str = "1:1"
    style_id: Optional[str] = None
    subject_id: Optional[str] = None
    model_tier: str = "pro"
    strategy: Optional[GenerationStrategy] = None
    subject_context: Optional[SubjectContext] = None
    style_preset: Optional[StylePreset] = None
    freedom_mode: bool = Field(default=False)


class GenerateImageResponse(CamelModel):
    """Schema for the immediate generation response."""
    job_id: str
    status: str
