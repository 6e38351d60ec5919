"""
Shared pytest fixtures: in-memory SQLite, a fake bank behind httpx.MockTransport,
synthetic receipt PDFs and the FastAPI TestClient.
"""
import pathlib

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sosha_verifier.database import Base, get_db
from sosha_verifier.dependencies import get_http_client
from sosha_verifier.main import app
from sosha_verifier.models import ApiKeyModel

FIXTURES = pathlib.Path(__file__).resolve().parent.parent / "fixtures"

TEST_API_KEY = "test-key-0001"

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)


# =====================================================================
# Synthetic receipts
# =====================================================================
def _pdf_escape(line: str) -> str:
    return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def _page_stream(lines) -> bytes:
    ops = ["BT", "/F1 10 Tf", "14 TL", "40 800 Td"]
    for line in lines:
        ops.append("(%s) Tj T*" % _pdf_escape(line))
    ops.append("ET")
    return "\n".join(ops).encode("latin-1")


def build_pdf(*pages) -> bytes:
    """PDF with one page per argument and one Helvetica text line per entry.

    Called without arguments it builds a document with an empty page tree.
    """
    # 1 catalog, 2 page tree, 3 font, then a page and its content per page.
    page_numbers = [4 + 2 * index for index in range(len(pages))]
    kids = " ".join("%d 0 R" % number for number in page_numbers).encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [" + kids + b"] /Count %d >>" % len(pages),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]
    for number, lines in zip(page_numbers, pages):
        stream = _page_stream(lines)
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
            b"/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % (number + 1)
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    return bytes(out)


CBE_LINES = [
    "Commercial Bank of Ethiopia",
    "Payer ABEBE KEBEDE",
    "Account 1****1234",
    "Receiver SOSHA HOPS PLC",
    "Account 1000156042704",
    "Payment Date & Time 1/3/2025, 2:15:00 PM",
    "Reference No. (VAT Invoice No) FT24123ABC",
    "Reason / Type of service Order payment",
    "Transferred Amount 12,345.67 ETB",
]

DASHEN_LINES = [
    "Dashen Bank Transaction Receipt",
    "Sender Name ABEBE KEBEDE",
    "Sender Account Number 5***1234",
    "Transaction Channel Mobile",
    "Service Type Transfer",
    "Narrative Order 42",
    "Receiver Name SOSHA HOPS",
    "Phone No 251911223344",
    "Institution Name Dashen Bank",
    "Transaction Reference DB25ABC123",
    "Transfer Reference TR998877",
    "Transaction Date 01/03/2025 14:15:00",
    "Transaction Amount ETB 2,500.00",
    "Service Charge ETB 5.00",
    "VAT (15%) ETB 0.75",
    "Total ETB 2,505.75",
]

CBEBIRR_LINES = [
    "CBE Birr Receipt",
    "Customer Name: ALMAZ TESFAYE Region: Addis Ababa",
    "Credit Account 251911223344",
    "Receiver Name SOSHA HOPS",
    "Order ID FT25003XYZ",
    "Transaction Status Completed",
    "Reference CBB123REF",
    "Receipt Number CBB123",
    "Transaction Date 2025-01-03 14:15",
    "Amount 1,500.00",
    "Paid amount 1,500.00",
    "Service Charge 5.00",
    "VAT 0.75",
    "Total Paid Amount 1,505.75",
]


def _abyssinia_document(**overrides) -> dict:
    transaction = {
        "Payer's Name": "Abebe Kebede",
        "Source Account": "1234516408",
        "Source Account Name": "Sosha Hops",
        "Transferred Amount": "1,500.00 ETB",
        "Transaction Date": "01/03/25 14:15",
        "Transaction Reference": "FT25003ABY",
        "Narrative": "Order 42",
    }
    transaction.update(overrides)
    return {"header": {"status": "success"}, "body": [transaction]}


@pytest.fixture()
def make_pdf():
    return build_pdf


@pytest.fixture()
def cbe_lines():
    return list(CBE_LINES)


@pytest.fixture()
def dashen_lines():
    return list(DASHEN_LINES)


@pytest.fixture()
def cbebirr_lines():
    return list(CBEBIRR_LINES)


@pytest.fixture()
def abyssinia_document():
    return _abyssinia_document


@pytest.fixture()
def telebirr_html():
    return (FIXTURES / "telebirr_receipt.html").read_text(encoding="utf-8")


# =====================================================================
# Fake bank
# =====================================================================
class FakeBank:
    """Answers outbound provider calls by URL prefix and records every request."""

    def __init__(self):
        self.routes = []
        self.requests = []

    def add(self, prefix, status=200, content=b"", json=None, headers=None, error=None):
        self.routes.append((prefix, status, content, json, headers or {}, error))

    def pdf(self, prefix, data):
        self.add(prefix, content=data, headers={"content-type": "application/pdf"})

    def html(self, prefix, markup):
        self.add(
            prefix,
            content=markup.encode("utf-8"),
            headers={"content-type": "text/html; charset=utf-8"},
        )

    def json(self, prefix, document):
        self.add(prefix, json=document)

    def hits(self, prefix):
        return [r for r in self.requests if str(r.url).startswith(prefix)]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, status, content, document, headers, error in self.routes:
            if not str(request.url).startswith(prefix):
                continue
            if error is not None:
                raise error
            if document is not None:
                return httpx.Response(status, json=document, headers=headers)
            return httpx.Response(status, content=content, headers=headers)
        return httpx.Response(404, text="not found")


@pytest.fixture()
def bank():
    return FakeBank()


@pytest.fixture()
def http_client(bank):
    with httpx.Client(transport=httpx.MockTransport(bank.handle)) as c:
        yield c


# =====================================================================
# Database + app
# =====================================================================
@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def api_key(db):
    db.add(ApiKeyModel(id="key-1", name="Bole Branch Till", key=TEST_API_KEY, is_active=True))
    db.commit()
    return TEST_API_KEY


@pytest.fixture()
def auth_headers(api_key):
    return {"x-api-key": api_key}


@pytest.fixture()
def client(db, http_client):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_http_client] = lambda: http_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()