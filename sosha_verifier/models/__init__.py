from sosha_verifier.models.api_key import ApiKeyModel
from sosha_verifier.models.verified_receipt import VerifiedReceiptModel

__all__ = ["ApiKeyModel", "VerifiedReceiptModel"]
