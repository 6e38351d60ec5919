"""
Sosha Verifier: FastAPI application entry-point.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sosha_verifier import __version__
from sosha_verifier.config import settings
from sosha_verifier.database import Base, engine
from sosha_verifier.errors import VerifierError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "sosha-verifier"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: ensure data dir + tables exist
    os.makedirs(settings.DATA_DIR, exist_ok=True)
    # Import models so Base.metadata knows about them
    import sosha_verifier.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready (%s)", settings.DATABASE_URL)

    app.state.http_client = httpx.Client(follow_redirects=True)
    yield
    app.state.http_client.close()
    logger.info("Shutting down")


app = FastAPI(
    title="Sosha Verifier",
    description="Bank receipt → extraction → canonical receipt → verified once",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-api-key", "x-cbe-birr-token", "content-type"],
)


# ── Error rendering ──────────────────────────────────────────────────────
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts)


def validation_message(errors) -> str:
    """Collapse pydantic errors into the single message a client sees."""
    required = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        kind = err.get("type", "")
        if kind == "json_invalid":
            return "Request body must be valid JSON"
        if loc == ("body",):
            if kind == "missing":
                return "Request body is required"
            return "Request body must be a JSON object"
        if kind in ("missing", "string_type", "string_too_short"):
            name = _field_name(loc)
            if name not in required:
                required.append(name)

    if required:
        verb = "is" if len(required) == 1 else "are"
        return f"{' and '.join(required)} {verb} required"

    for err in errors:
        if err.get("type") == "value_error":
            return str(err.get("ctx", {}).get("error", err.get("msg", "Invalid request")))

    first = errors[0] if errors else {}
    name = _field_name(first.get("loc", ()))
    return f"{name} is invalid" if name else "Invalid request"


@app.exception_handler(VerifierError)
async def verifier_error_handler(request: Request, exc: VerifierError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error(400, validation_message(exc.errors()))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "Internal server error")


@app.get("/")
async def root():
    return {"service": SERVICE_NAME, "version": __version__, "status": "running"}


@app.get("/health")
async def health_check():
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Register API router ──────────────────────────────────────────────────
from sosha_verifier.routers.verify import router as verify_router  # noqa: E402

app.include_router(verify_router, prefix="/api", tags=["Receipt Verification"])
