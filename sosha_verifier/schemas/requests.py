"""
Verification request bodies, one per provider.
"""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

ETHIOPIAN_PHONE_RE = re.compile(r"251\d{9}")


class VerifyRequestBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    manual_override: StrictBool = Field(default=False, alias="manualOverride")


class CbeVerifyRequest(VerifyRequestBase):
    reference: StrictStr = Field(..., min_length=1)
    account_suffix: StrictStr = Field(..., min_length=1, alias="accountSuffix")
    order_id: Optional[StrictStr] = Field(default=None, alias="orderId")
    branch_id: Optional[StrictStr] = Field(default=None, alias="branchId")


class TelebirrVerifyRequest(VerifyRequestBase):
    reference: StrictStr = Field(..., min_length=1)


class DashenVerifyRequest(VerifyRequestBase):
    reference: StrictStr = Field(..., min_length=1)


class AbyssiniaVerifyRequest(VerifyRequestBase):
    reference: StrictStr = Field(..., min_length=1)
    suffix: StrictStr = Field(..., min_length=1)


class CbeBirrVerifyRequest(VerifyRequestBase):
    receipt_number: StrictStr = Field(..., min_length=1, alias="receiptNumber")
    phone_number: StrictStr = Field(..., alias="phoneNumber")

    @field_validator("phone_number")
    @classmethod
    def _ethiopian_phone(cls, value: str) -> str:
        if not ETHIOPIAN_PHONE_RE.fullmatch(value):
            raise ValueError(
                "Invalid Ethiopian phone number format. "
                "Must start with 251 and be 12 digits total"
            )
        return value
