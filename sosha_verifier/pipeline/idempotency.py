"""
Idempotency gate over the ``verified_receipts`` table.

The up-front lookup only saves a network round trip; the unique constraint on
(reference_number, bank) is what actually decides a race between two
requests for the same receipt.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from sosha_verifier.config import settings
from sosha_verifier.errors import DuplicateReceiptError, PersistenceError
from sosha_verifier.models import VerifiedReceiptModel

logger = logging.getLogger(__name__)


class ReceiptLedger:
    """Reads and writes verified receipts through one database session."""

    def __init__(self, db: Session, operator_name: Optional[str] = None):
        self.db = db
        self.operator_name = operator_name or settings.OPERATOR_NAME

    def find(self, reference_number: str, bank: str) -> Optional[VerifiedReceiptModel]:
        return (
            self.db.query(VerifiedReceiptModel)
            .filter(
                VerifiedReceiptModel.reference_number == reference_number,
                VerifiedReceiptModel.bank == bank,
            )
            .first()
        )

    def _duplicate(self, existing: VerifiedReceiptModel) -> DuplicateReceiptError:
        verified_at = existing.verified_at.isoformat() if existing.verified_at else "an earlier date"
        return DuplicateReceiptError(
            f"Receipt already used at {self.operator_name} on {verified_at}."
        )

    def ensure_not_used(self, reference_number: str, bank: str) -> None:
        existing = self.find(reference_number, bank)
        if existing is not None:
            logger.info("Duplicate receipt %s/%s rejected before fetch", bank, reference_number)
            raise self._duplicate(existing)

    def record(
        self,
        *,
        reference_number: str,
        bank: str,
        amount: Optional[Decimal],
        receiver_account: Optional[str],
        verified_by: Optional[str],
        order_id: Optional[str] = None,
        branch_id: Optional[str] = None,
        manual_override: bool = False,
    ) -> VerifiedReceiptModel:
        """Insert the verified receipt exactly once."""
        record = VerifiedReceiptModel(
            id=str(uuid.uuid4()),
            reference_number=reference_number,
            bank=bank,
            amount=amount,
            receiver_account=receiver_account,
            order_id=order_id,
            branch_id=branch_id,
            verified_by=verified_by,
            manual_override=manual_override,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            existing = self.find(reference_number, bank)
            if existing is not None:
                logger.info("Lost insert race for %s/%s", bank, reference_number)
                raise self._duplicate(existing) from exc
            logger.error("Insert rejected for %s/%s: %s", bank, reference_number, exc, exc_info=True)
            raise PersistenceError() from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to store %s/%s: %s", bank, reference_number, exc, exc_info=True)
            raise PersistenceError() from exc

        logger.info("Stored verified receipt %s (%s/%s)", record.id, bank, reference_number)
        return record
