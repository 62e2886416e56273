"""
KYC Vault Backend — Uvicorn Launcher

Usage:
    python run.py
    python run.py --storage memory --reload
    python run.py --database-url sqlite:///./data/kyc.db --log-level DEBUG
"""
import argparse
import os

import uvicorn

# Command-line values become environment overrides, which Settings reads on first use
ENV_OVERRIDES = {
    "storage": "STORAGE_BACKEND",
    "database_url": "DATABASE_URL",
    "log_level": "LOG_LEVEL",
    "environment": "ENVIRONMENT",
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve the KYC Vault API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on source changes")
    parser.add_argument("--storage", choices=("sql", "memory"), help="record store backend")
    parser.add_argument("--database-url", help="SQLAlchemy URL for the sql backend")
    parser.add_argument("--log-level", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    parser.add_argument("--environment", help="e.g. development or production")
    return parser.parse_args(argv)


def apply_overrides(args, environ=os.environ):
    for option, variable in ENV_OVERRIDES.items():
        value = getattr(args, option)
        if value is not None:
            environ[variable] = value


def main(argv=None):
    args = parse_args(argv)
    apply_overrides(args)

    from kyc_app.config import get_settings
    settings = get_settings()
    where = settings.DATABASE_URL if settings.STORAGE_BACKEND == "sql" else "process memory"
    print(
        f"{settings.APP_NAME} v{settings.APP_VERSION} [{settings.ENVIRONMENT}]\n"
        f"  records: {settings.STORAGE_BACKEND} ({where})\n"
        f"  listening on http://{args.host}:{args.port}  (docs at /docs)"
    )

    # A single worker: the memory backend lives inside the process
    uvicorn.run(
        "kyc_app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
