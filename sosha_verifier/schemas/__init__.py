from sosha_verifier.schemas.base import (
    ApiKeyPrincipal,
    CanonicalReceipt,
    ErrorResponse,
    PayloadKind,
    ProviderFields,
    RawReceiptPayload,
    ReceiptLocator,
    VerificationResponse,
)
from sosha_verifier.schemas.requests import (
    AbyssiniaVerifyRequest,
    CbeBirrVerifyRequest,
    CbeVerifyRequest,
    DashenVerifyRequest,
    TelebirrVerifyRequest,
)

__all__ = [
    "AbyssiniaVerifyRequest",
    "ApiKeyPrincipal",
    "CanonicalReceipt",
    "CbeBirrVerifyRequest",
    "CbeVerifyRequest",
    "DashenVerifyRequest",
    "ErrorResponse",
    "PayloadKind",
    "ProviderFields",
    "RawReceiptPayload",
    "ReceiptLocator",
    "TelebirrVerifyRequest",
    "VerificationResponse",
]
