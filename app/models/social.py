"""
Social Models
GoHighLevel integrations and the local cache of social posts.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON

from app.core.database import Base


class GhlIntegration(Base):
    """GHL sub-account credentials for a business."""

    __tablename__ = "ghl_integrations"

    location_id = Column(String, primary_key=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=True, index=True)
    access_token = Column(Text, nullable=False)
    user_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)


class SocialPost(Base):
    """Post created through GHL."""

    __tablename__ = "social_posts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    ghl_post_id = Column(String, unique=True, nullable=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)
    location_id = Column(String, nullable=True)

    summary = Column(Text, nullable=False, default="")
    media_urls = Column(JSON, default=[])
    platforms = Column(JSON, default=[])

    # Status: draft, scheduled, published, failed
    status = Column(String, default="draft", index=True)
    scheduled_at = Column(DateTime, nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
