"""
Shared FastAPI dependencies: caller authentication and the outbound HTTP client.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from sosha_verifier.database import get_db
from sosha_verifier.errors import UnauthenticatedError
from sosha_verifier.models import ApiKeyModel
from sosha_verifier.schemas import ApiKeyPrincipal

logger = logging.getLogger(__name__)


def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="x-api-key"),
    db: Session = Depends(get_db),
) -> ApiKeyPrincipal:
    """Resolve the ``x-api-key`` header to an active API key principal."""
    if not x_api_key:
        raise UnauthenticatedError("x-api-key header is required")

    record = (
        db.query(ApiKeyModel)
        .filter(ApiKeyModel.key == x_api_key, ApiKeyModel.is_active == True)  # noqa: E712
        .first()
    )
    if record is None:
        logger.warning("Rejected request with unknown or inactive API key")
        raise UnauthenticatedError("Invalid API key")

    return ApiKeyPrincipal(id=record.id, name=record.name)


def get_bank_token(
    authorization: Optional[str] = Header(default=None),
    x_cbe_birr_token: Optional[str] = Header(default=None, alias="x-cbe-birr-token"),
) -> Optional[str]:
    """Bank-issued bearer token, from ``Authorization: Bearer`` or ``x-cbe-birr-token``."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    if x_cbe_birr_token and x_cbe_birr_token.strip():
        return x_cbe_birr_token.strip()
    return None


def get_http_client(request: Request) -> httpx.Client:
    """The application-wide ``httpx.Client`` opened in the lifespan."""
    return request.app.state.http_client
