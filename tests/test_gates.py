"""
Unit tests for the ownership gate, the idempotency ledger, the normalizer
and the end-to-end pipeline.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from sosha_verifier.errors import (
    DuplicateReceiptError,
    OwnershipMismatchError,
    PersistenceError,
    ProviderParseFailure,
)
from sosha_verifier.models import VerifiedReceiptModel
from sosha_verifier.pipeline import verify_receipt
from sosha_verifier.pipeline.idempotency import ReceiptLedger
from sosha_verifier.pipeline.normalizer import build_canonical
from sosha_verifier.pipeline.ownership import ensure_owned
from sosha_verifier.providers import build_provider
from sosha_verifier.schemas import ApiKeyPrincipal, CanonicalReceipt, ReceiptLocator

CBE_URL = "https://apps.cbe.com.et:100/"
PRINCIPAL = ApiKeyPrincipal(id="key-1", name="Bole Branch Till")


def _receipt(receiver_account="1000156042704") -> CanonicalReceipt:
    return build_canonical(
        {},
        payer="Abebe Kebede",
        receiver_account=receiver_account,
        amount=Decimal("100.00"),
        timestamp=datetime(2025, 1, 3, 11, 15, tzinfo=timezone.utc),
        reference="FT24123ABC",
    )


def _record(ledger, reference="FT24123ABC", bank="CBE"):
    return ledger.record(
        reference_number=reference,
        bank=bank,
        amount=Decimal("100.00"),
        receiver_account="1000156042704",
        verified_by="Bole Branch Till",
    )


# =====================================================================
# Normalizer
# =====================================================================
class TestNormalizer:
    def test_builds_success_receipt(self):
        receipt = _receipt()
        assert receipt.success is True
        assert receipt.payer_account is None
        assert receipt.reason is None

    def test_missing_fields_named(self):
        with pytest.raises(ProviderParseFailure) as exc:
            build_canonical(
                {"x": "y"},
                payer=None,
                receiver_account="",
                amount=Decimal("1"),
                timestamp=None,
                reference="R",
            )
        assert "payer" in exc.value.message
        assert "receiverAccount" in exc.value.message
        assert "timestamp" in exc.value.message
        assert "reference" not in exc.value.message

    def test_receipt_is_immutable(self):
        receipt = _receipt()
        with pytest.raises(Exception):
            receipt.amount = Decimal("0")

    def test_json_uses_camel_case_and_numbers(self):
        data = _receipt().model_dump(mode="json", by_alias=True)
        assert data["receiverAccount"] == "1000156042704"
        assert data["amount"] == 100.0
        assert data["timestamp"].startswith("2025-01-03T11:15:00")


# =====================================================================
# Ownership
# =====================================================================
class TestOwnership:
    def test_matching_suffix(self):
        ensure_owned(_receipt(), "56042704")

    def test_mismatch(self):
        with pytest.raises(OwnershipMismatchError) as exc:
            ensure_owned(_receipt("1000156042799"), "56042704")
        assert exc.value.message == "Receipt is not for Sosha Hops account."
        assert exc.value.status_code == 422

    def test_operator_name_configurable(self):
        with pytest.raises(OwnershipMismatchError, match="not for Other Co account"):
            ensure_owned(_receipt("1"), "56042704", operator_name="Other Co")

    @pytest.mark.parametrize("suffix", [None, ""])
    def test_no_suffix_skips_gate(self, suffix):
        ensure_owned(_receipt("251911223344"), suffix)


# =====================================================================
# Idempotency ledger
# =====================================================================
class TestLedger:
    def test_record_and_duplicate_check(self, db):
        ledger = ReceiptLedger(db)
        ledger.ensure_not_used("FT24123ABC", "CBE")
        record = _record(ledger)
        assert record.id
        assert record.manual_override is False

        with pytest.raises(DuplicateReceiptError) as exc:
            ledger.ensure_not_used("FT24123ABC", "CBE")
        assert exc.value.message.startswith("Receipt already used at Sosha Hops on ")
        assert exc.value.status_code == 409

    def test_same_reference_other_bank_allowed(self, db):
        ledger = ReceiptLedger(db)
        _record(ledger, bank="CBE")
        ledger.ensure_not_used("FT24123ABC", "DASHEN")
        _record(ledger, bank="DASHEN")
        assert db.query(VerifiedReceiptModel).count() == 2

    def test_losing_insert_race_is_duplicate(self, db):
        ledger = ReceiptLedger(db)
        _record(ledger)
        # A concurrent request that passed the lookup before the first commit.
        with pytest.raises(DuplicateReceiptError):
            _record(ledger)
        assert db.query(VerifiedReceiptModel).count() == 1

    def test_store_failure_is_persistence_error(self, db, monkeypatch):
        ledger = ReceiptLedger(db)

        def _broken_commit():
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", _broken_commit)
        with pytest.raises(PersistenceError):
            _record(ledger)


# =====================================================================
# Pipeline
# =====================================================================
class TestVerifyReceipt:
    def test_success_records_once(self, db, bank, http_client, make_pdf, cbe_lines):
        bank.pdf(CBE_URL, make_pdf(cbe_lines))
        provider = build_provider("CBE", http_client)
        locator = ReceiptLocator("FT24123ABC", account_suffix="56042704")

        result = verify_receipt(provider, locator, ReceiptLedger(db), PRINCIPAL, order_id="ord-7")
        assert result.bank == "CBE"
        assert result.reference_number == "FT24123ABC"

        row = db.query(VerifiedReceiptModel).one()
        assert row.id == result.verified_receipt_id
        assert row.order_id == "ord-7"
        assert row.verified_by == "Bole Branch Till"
        assert Decimal(row.amount) == Decimal("12345.67")

    def test_duplicate_checked_before_fetch(self, db, bank, http_client, make_pdf, cbe_lines):
        bank.pdf(CBE_URL, make_pdf(cbe_lines))
        provider = build_provider("CBE", http_client)
        locator = ReceiptLocator("FT24123ABC", account_suffix="56042704")
        verify_receipt(provider, locator, ReceiptLedger(db), PRINCIPAL)

        with pytest.raises(DuplicateReceiptError):
            verify_receipt(provider, locator, ReceiptLedger(db), PRINCIPAL)
        assert len(bank.requests) == 1

    def test_ownership_mismatch_not_persisted(self, db, bank, http_client, make_pdf, cbe_lines):
        lines = [line.replace("1000156042704", "1000156042799") for line in cbe_lines]
        bank.pdf(CBE_URL, make_pdf(lines))
        provider = build_provider("CBE", http_client)
        with pytest.raises(OwnershipMismatchError, match="not for Sosha Hops account"):
            verify_receipt(
                provider,
                ReceiptLocator("FT24123ABC", account_suffix="56042704"),
                ReceiptLedger(db),
                PRINCIPAL,
            )
        assert db.query(VerifiedReceiptModel).count() == 0
