"""
Business Model
Brand configuration consumed by the prompt template. Read-only for this service.
"""

from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, JSON

from app.core.database import Base


class Business(Base):
    """Brand profile for a business."""

    __tablename__ = "businesses"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=True)  # retail, service, online, ...
    industry = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    website = Column(String, nullable=True)
    currency = Column(String, default="USD")

    # Brand configuration (JSON for SQLite compatibility)
    colors = Column(JSON, default={})  # {primary, secondary, accent}
    voice = Column(JSON, default={})  # {tone, keywords, negativeKeywords, slogan, archetype, tonePills}
    profile = Column(JSON, default={})  # {contactEmail, contactPhone, address, hours, ...}
    ad_preferences = Column(JSON, default={})  # {targetAudience, complianceText, preferredCta, ...}
    offerings = Column(JSON, default=[])
    visual_motifs = Column(JSON, default=[])
    social_config = Column(JSON, default={})  # {ghlLocationId, connectedAccounts, ...}

    logo_url = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
