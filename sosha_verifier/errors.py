"""Failure taxonomy for receipt verification.

Every exception carries the user-facing message and the HTTP status that
conveys its failure class; the API layer renders them as
``{"success": false, "error": message}``.
"""


class VerifierError(Exception):
    """Base exception for all verification failures."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InputValidationError(VerifierError):
    """Raised when request fields are missing or malformed."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UnauthenticatedError(VerifierError):
    """Raised when the caller's key or a required bank credential is missing or invalid."""

    def __init__(self, message: str = "Invalid API key"):
        super().__init__(message, status_code=401)


class DuplicateReceiptError(VerifierError):
    """Raised when (reference, bank) has already been recorded."""

    def __init__(self, message: str = "Receipt already used"):
        super().__init__(message, status_code=409)


class OwnershipMismatchError(VerifierError):
    """Raised when a genuine receipt was paid into someone else's account."""

    def __init__(self, message: str):
        super().__init__(message, status_code=422)


class ProviderError(VerifierError):
    """Base class for failures caused by an external provider."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class ProviderUnreachableError(ProviderError):
    """Raised on network errors, timeouts and non-2xx answers."""


class ProviderParseFailure(ProviderError):
    """Raised when a payload was retrieved but falls below the completeness floor."""


class ExtractionError(ProviderParseFailure):
    """Raised when a payload cannot be turned into text at all."""


class PersistenceError(VerifierError):
    """Raised when the store rejects an insert for reasons other than uniqueness."""

    def __init__(self, message: str = "Failed to record verified receipt"):
        super().__init__(message, status_code=500)
