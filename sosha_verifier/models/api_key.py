"""
API key model (caller authentication)
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from sosha_verifier.database import Base


class ApiKeyModel(Base):
    """Issued API key; only active keys authenticate."""
    __tablename__ = "api_keys"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    key = Column(String, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
