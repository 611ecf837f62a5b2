"""
System Prompt Model
Admin-editable overrides for the compiled-in prompt templates.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime

from app.core.database import Base


class SystemPrompt(Base):
    """Prompt template overrides (single row in practice)."""

    __tablename__ = "system_prompts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    image_gen_rules = Column(Text, nullable=True)
    caption_rules = Column(Text, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
