"""
Sosha Verifier application settings.
"""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/sosha_verifier.db"
    DATA_DIR: str = "./data"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Operator whose accounts receive the payments
    OPERATOR_NAME: str = "Sosha Hops"

    # Receipts print local (East Africa) wall-clock time
    PROVIDER_TIMEZONE: str = "Africa/Addis_Ababa"

    # Outbound provider calls
    FETCH_TIMEOUT_SECONDS: float = 30.0
    TELEBIRR_TIMEOUT_SECONDS: float = 15.0
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122 Safari/537.36"
    )
    PROXY_USER_AGENT: str = "SoshaVerifier/1.0"

    # Provider endpoints
    CBE_RECEIPT_URL: str = "https://apps.cbe.com.et:100/"
    TELEBIRR_PRIMARY_URL: str = "https://transactioninfo.ethiotelecom.et/receipt/"
    TELEBIRR_PROXY_URL: str = "https://leul.et/verify.php"
    TELEBIRR_TRY_PRIMARY_FIRST: bool = True
    DASHEN_RECEIPT_URL: str = "https://receipt.dashensuperapp.com/receipt/"
    ABYSSINIA_API_URL: str = "https://cs.bankofabyssinia.com/api/onlineSlip/getDetails/"
    CBEBIRR_RECEIPT_URL: str = "https://cbepay1.cbe.com.et/aureceipt"

    # Ownership: the receiving account must end with these digits.
    # Unset means the provider is not ownership-checked.
    CBE_ACCOUNT_SUFFIX: Optional[str] = "56042704"
    ABYSSINIA_ACCOUNT_SUFFIX: Optional[str] = "16408"
    TELEBIRR_ACCOUNT_SUFFIX: Optional[str] = None
    DASHEN_ACCOUNT_SUFFIX: Optional[str] = None
    CBEBIRR_ACCOUNT_SUFFIX: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
