"""
FastAPI Application — Business Owner Verification.

Architecture:
  - SQLite (dev) / PostgreSQL (prod) via SQLAlchemy
  - Local filesystem or MinIO for certificate PDFs
  - Caller identity from the gateway's `X-User-Id` header
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes.certificates import public_router as verify_router
from src.api.routes.certificates import router as certificates_router
from src.api.routes.verification import router as verification_router
from src.config.settings import get_settings
from src.core.errors import (
    ConcurrencyConflict,
    DependencyFailure,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from src.infrastructure.db.database import init_db

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Business Owner Verification",
    description="Verification attempts, per-document review, certificates and audit trail for business owners.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ──
ERROR_STATUS = {
    NotFoundError: 404,
    InvalidStateError: 409,
    ValidationError: 422,
    ConcurrencyConflict: 409,
    DependencyFailure: 502,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception):
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


for error_class, status_code in ERROR_STATUS.items():
    app.add_exception_handler(error_class, _error_handler(status_code))


# ── Startup ──
@app.on_event("startup")
async def startup():
    """Create tables."""
    init_db()
    logger.info("Business Owner Verification started")


app.include_router(verification_router, prefix="/api/v1", tags=["Verification"])
app.include_router(certificates_router, prefix="/api/v1", tags=["Certificates"])
app.include_router(verify_router, tags=["Public"])


# ── Health ──
@app.get("/health")
async def health():
    db_url = settings.database_url
    return {
        "status": "ok",
        "env": settings.env,
        "database": "PostgreSQL" if db_url.startswith("postgresql") else "SQLite",
        "storage": settings.storage_backend,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.api.main:app", host=settings.api_host, port=settings.api_port, reload=settings.debug)
