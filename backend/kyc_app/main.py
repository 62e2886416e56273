"""
KYC Vault — FastAPI Application Entry Point

Aggregates the routers, configures middleware and logging,
and initializes the database on startup.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from kyc_app.config import get_settings
from kyc_app.database import SessionLocal, init_db
from kyc_app.logging_config import configure_logging
from kyc_app.routes import kyc_router, admin_router

settings = get_settings()
logger = logging.getLogger(__name__)

BOOT_TIME = time.time()


# ─── Startup ─────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration, create tables and log boot info."""
    configure_logging()
    settings.check_encryption_key()
    if settings.STORAGE_BACKEND == "sql":
        init_db()

    logger.info(
        "\n%s\n  %s v%s\n  TIME: %s\n  ENVIRONMENT: %s\n  STORAGE: %s (%s)\n"
        "  ENCRYPTION KEY: %s\n  REQUIRE AADHAAR: %s\n  DEBUG: %s\n%s",
        "=" * 60,
        settings.APP_NAME, settings.APP_VERSION,
        datetime.now().isoformat(),
        settings.ENVIRONMENT,
        settings.STORAGE_BACKEND, settings.DATABASE_URL,
        "[!] Default" if settings.uses_default_key else "[OK] Loaded",
        settings.REQUIRE_AADHAAR,
        settings.DEBUG,
        "=" * 60,
    )
    yield


# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "KYC onboarding API. Validates identity submissions, encrypts government ID, "
        "PAN, date of birth and Aadhaar at rest, and rejects duplicate PANs via a "
        "one-way fingerprint index."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    if request.url.path.startswith("/api"):
        logger.info("-> %s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)

    return response


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(kyc_router)
app.include_router(admin_router)


@app.get("/health", tags=["Health"])
def deep_health():
    """Health check including storage status."""
    storage_ok = True
    if settings.STORAGE_BACKEND == "sql":
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("Health check: database unreachable: %s", exc)
            storage_ok = False
        finally:
            db.close()

    return {
        "status": "healthy" if storage_ok else "degraded",
        "storage": settings.STORAGE_BACKEND,
        "database": "connected" if storage_ok else "disconnected",
        "encryption_key": "default" if settings.uses_default_key else "configured",
        "uptime_seconds": round(time.time() - BOOT_TIME, 1),
        "version": settings.APP_VERSION,
    }
