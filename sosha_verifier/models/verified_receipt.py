"""
SQLAlchemy model for verified receipts.

A row exists once per (reference_number, bank); the unique constraint is what
keeps a receipt from being credited twice.
"""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Numeric, String, UniqueConstraint

from sosha_verifier.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerifiedReceiptModel(Base):
    __tablename__ = "verified_receipts"
    __table_args__ = (
        UniqueConstraint(
            "reference_number", "bank",
            name="verified_receipts_unique_reference_bank",
        ),
    )

    id = Column(String, primary_key=True)
    reference_number = Column(String, nullable=False)
    bank = Column(String, nullable=False)
    amount = Column(Numeric(18, 2))
    receiver_account = Column(String)
    verified_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    order_id = Column(String)
    branch_id = Column(String)
    verified_by = Column(String)
    manual_override = Column(Boolean, nullable=False, default=False)
