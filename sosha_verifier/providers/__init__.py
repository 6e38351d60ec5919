"""
Receipt providers, keyed by the ``bank`` value stored with each record.
"""
from __future__ import annotations

from typing import Optional

import httpx

from sosha_verifier.config import Settings, settings as default_settings
from sosha_verifier.providers.abyssinia import AbyssiniaProvider
from sosha_verifier.providers.base import ReceiptProvider
from sosha_verifier.providers.cbe import CbeProvider
from sosha_verifier.providers.cbebirr import CbeBirrProvider
from sosha_verifier.providers.dashen import DashenProvider
from sosha_verifier.providers.telebirr import TelebirrProvider

PROVIDERS: dict[str, type[ReceiptProvider]] = {
    CbeProvider.bank: CbeProvider,
    TelebirrProvider.bank: TelebirrProvider,
    DashenProvider.bank: DashenProvider,
    AbyssiniaProvider.bank: AbyssiniaProvider,
    CbeBirrProvider.bank: CbeBirrProvider,
}


def _provider_options(config: Settings) -> dict[str, dict]:
    return {
        CbeProvider.bank: {
            "base_url": config.CBE_RECEIPT_URL,
            "ownership_suffix": config.CBE_ACCOUNT_SUFFIX,
        },
        TelebirrProvider.bank: {
            "base_url": config.TELEBIRR_PRIMARY_URL,
            "proxy_url": config.TELEBIRR_PROXY_URL,
            "try_primary_first": config.TELEBIRR_TRY_PRIMARY_FIRST,
            "ownership_suffix": config.TELEBIRR_ACCOUNT_SUFFIX,
            "timeout": config.TELEBIRR_TIMEOUT_SECONDS,
        },
        DashenProvider.bank: {
            "base_url": config.DASHEN_RECEIPT_URL,
            "ownership_suffix": config.DASHEN_ACCOUNT_SUFFIX,
        },
        AbyssiniaProvider.bank: {
            "base_url": config.ABYSSINIA_API_URL,
            "ownership_suffix": config.ABYSSINIA_ACCOUNT_SUFFIX,
        },
        CbeBirrProvider.bank: {
            "base_url": config.CBEBIRR_RECEIPT_URL,
            "ownership_suffix": config.CBEBIRR_ACCOUNT_SUFFIX,
        },
    }


def build_provider(
    bank: str,
    client: httpx.Client,
    config: Optional[Settings] = None,
) -> ReceiptProvider:
    """Instantiate the provider for *bank* with endpoints and suffixes from settings."""
    config = config or default_settings
    provider_cls = PROVIDERS.get(bank)
    if provider_cls is None:
        raise KeyError(f"Unknown provider: {bank}")

    options = {
        "timeout": config.FETCH_TIMEOUT_SECONDS,
        "user_agent": config.BROWSER_USER_AGENT,
    }
    options.update(_provider_options(config)[bank])
    return provider_cls(client, **options)


__all__ = [
    "PROVIDERS",
    "AbyssiniaProvider",
    "CbeBirrProvider",
    "CbeProvider",
    "DashenProvider",
    "ReceiptProvider",
    "TelebirrProvider",
    "build_provider",
]
