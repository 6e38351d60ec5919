"""
Ownership gate: a receipt only counts if it paid into the operator's account.
"""
from __future__ import annotations

import logging
from typing import Optional

from sosha_verifier.config import settings
from sosha_verifier.errors import OwnershipMismatchError
from sosha_verifier.schemas import CanonicalReceipt

logger = logging.getLogger(__name__)


def ensure_owned(
    receipt: CanonicalReceipt,
    account_suffix: Optional[str],
    operator_name: Optional[str] = None,
) -> None:
    """Raise OwnershipMismatchError unless the receiver account ends with *account_suffix*.

    Providers without a registered suffix are not checked.
    """
    if not account_suffix:
        return

    receiver_account = receipt.receiver_account or ""
    if receiver_account.endswith(account_suffix):
        return

    logger.warning(
        "Ownership mismatch for reference %s: receiver account %s",
        receipt.reference, receiver_account,
    )
    raise OwnershipMismatchError(
        f"Receipt is not for {operator_name or settings.OPERATOR_NAME} account."
    )
