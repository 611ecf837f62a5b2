"""
Social Schemas
Caption generation and GHL post requests/responses.
"""

from datetime import datetime
from typing import Optional, List

from app.schemas.base import CamelModel


class CaptionVoice(CamelModel):
    archetype: Optional[str] = None
    tone_pills: List[str] = []
    slogan: Optional[str] = None


class CaptionBusiness(CamelModel):
    name: Optional[str] = None
    industry: Optional[str] = None
    voice: Optional[CaptionVoice] = None
    target_audience: Optional[str] = None


class CaptionRequest(CamelModel):
    """Schema for POST /api/social/generate-caption."""
    asset_prompt: Optional[str] = None
    business: Optional[CaptionBusiness] = None
    platform: str = "general"  # instagram | facebook | linkedin | twitter | general
    hashtag_mode: str = "ai_plus_brand"  # ai_only | brand_only | ai_plus_brand
    brand_hashtags: List[str] = []


class CaptionResponse(CamelModel):
    caption: str


class SocialPostRequest(CamelModel):
    """Schema for POST /api/social/post."""
    business_id: Optional[str] = None
    location_id: Optional[str] = None
    account_ids: List[str] = []
    caption: Optional[str] = None
    media_urls: List[str] = []
    platforms: List[str] = []
    scheduled_at: Optional[datetime] = None
    first_comment: bool = False


class SocialPostResponse(CamelModel):
    success: bool
    post_id: Optional[str] = None
    status: Optional[str] = None


class SocialPostRecord(CamelModel):
    id: str
    ghl_post_id: Optional[str] = None
    business_id: str
    location_id: Optional[str] = None
    summary: str
    media_urls: List[str] = []
    platforms: List[str] = []
    status: str
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_at: datetime


class SocialPostsResponse(CamelModel):
    posts: List[SocialPostRecord] = []
