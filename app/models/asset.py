"""
Asset Model
A generated piece of content. Created once when generation succeeds.
"""

import secrets
import time
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey

from app.core.database import Base


def new_asset_id() -> str:
    """asset_<epoch ms>_<random> format."""
    return f"asset_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class Asset(Base):
    """Generated asset model."""

    __tablename__ = "assets"

    id = Column(String, primary_key=True, default=new_asset_id)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)

    type = Column(String, default="image")
    content = Column(Text, nullable=False)  # public URL
    prompt = Column(Text, nullable=True)
    aspect_ratio = Column(String, nullable=True)
    style_preset = Column(String, nullable=True)
    style_id = Column(String, nullable=True)
    subject_id = Column(String, nullable=True)
    model_tier = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
