"""
Receipt verification API router.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sosha_verifier.database import get_db
from sosha_verifier.dependencies import get_bank_token, get_http_client, require_api_key
from sosha_verifier.errors import UnauthenticatedError
from sosha_verifier.pipeline import verify_receipt
from sosha_verifier.pipeline.idempotency import ReceiptLedger
from sosha_verifier.providers import build_provider
from sosha_verifier.providers.cbebirr import TOKEN_REQUIRED_MESSAGE
from sosha_verifier.schemas import (
    AbyssiniaVerifyRequest,
    ApiKeyPrincipal,
    CbeBirrVerifyRequest,
    CbeVerifyRequest,
    DashenVerifyRequest,
    ErrorResponse,
    ReceiptLocator,
    TelebirrVerifyRequest,
    VerificationResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()

ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 404, 409, 422, 500, 502)
}


# ── POST /api/verify/cbe ─────────────────────────────────────────────────
@router.post("/verify/cbe", response_model=VerificationResponse, responses=ERROR_RESPONSES)
def verify_cbe(
    req: CbeVerifyRequest,
    principal: ApiKeyPrincipal = Depends(require_api_key),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    """Verify a Commercial Bank of Ethiopia transfer receipt."""
    locator = ReceiptLocator(reference=req.reference, account_suffix=req.account_suffix)
    return verify_receipt(
        build_provider("CBE", client),
        locator,
        ReceiptLedger(db),
        principal,
        order_id=req.order_id,
        branch_id=req.branch_id,
        manual_override=req.manual_override,
    )


# ── POST /api/verify/telebirr ────────────────────────────────────────────
@router.post("/verify/telebirr", response_model=VerificationResponse, responses=ERROR_RESPONSES)
def verify_telebirr(
    req: TelebirrVerifyRequest,
    principal: ApiKeyPrincipal = Depends(require_api_key),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    """Verify a Telebirr receipt (primary receipt page, then proxy)."""
    return verify_receipt(
        build_provider("TELEBIRR", client),
        ReceiptLocator(reference=req.reference),
        ReceiptLedger(db),
        principal,
        manual_override=req.manual_override,
    )


# ── POST /api/verify/dashen ──────────────────────────────────────────────
@router.post("/verify/dashen", response_model=VerificationResponse, responses=ERROR_RESPONSES)
def verify_dashen(
    req: DashenVerifyRequest,
    principal: ApiKeyPrincipal = Depends(require_api_key),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    return verify_receipt(
        build_provider("DASHEN", client),
        ReceiptLocator(reference=req.reference),
        ReceiptLedger(db),
        principal,
        manual_override=req.manual_override,
    )


# ── POST /api/verify/abyssinia ───────────────────────────────────────────
@router.post("/verify/abyssinia", response_model=VerificationResponse, responses=ERROR_RESPONSES)
def verify_abyssinia(
    req: AbyssiniaVerifyRequest,
    principal: ApiKeyPrincipal = Depends(require_api_key),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    return verify_receipt(
        build_provider("ABYSSINIA", client),
        ReceiptLocator(reference=req.reference, account_suffix=req.suffix),
        ReceiptLedger(db),
        principal,
        manual_override=req.manual_override,
    )


# ── POST /api/verify/cbebirr ─────────────────────────────────────────────
@router.post("/verify/cbebirr", response_model=VerificationResponse, responses=ERROR_RESPONSES)
def verify_cbebirr(
    req: CbeBirrVerifyRequest,
    principal: ApiKeyPrincipal = Depends(require_api_key),
    bank_token: Optional[str] = Depends(get_bank_token),
    db: Session = Depends(get_db),
    client: httpx.Client = Depends(get_http_client),
):
    """Verify a CBE-Birr receipt using the caller's bank-issued bearer token."""
    if not bank_token:
        raise UnauthenticatedError(TOKEN_REQUIRED_MESSAGE)

    locator = ReceiptLocator(
        reference=req.receipt_number,
        phone_number=req.phone_number,
        bearer_token=bank_token,
    )
    return verify_receipt(
        build_provider("CBEBIRR", client),
        locator,
        ReceiptLedger(db),
        principal,
        manual_override=req.manual_override,
    )
