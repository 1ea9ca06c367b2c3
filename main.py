"""
Unified backend entry point for the live-class reminder service.

Architecture:
- One Python process, one asyncio event loop
- FastAPI serves the cron trigger and the internal email relay
- Optionally, an in-process APScheduler job runs the same dispatch every
  5 minutes (REMINDER_INTERNAL_CRON=true or --internal-cron) for hosts
  without an external cron

Run with: python main.py [--port PORT] [--internal-cron]
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Set up import paths before any local imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")  # Local overrides (gitignored)
load_dotenv()  # Fallback to .env

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import check_required_env_vars, get_allowed_origins, get_api_port
from core.database import close_engine, is_configured
from core.mail import is_mail_configured
from core.reminders.scheduler import init_scheduler, shutdown_scheduler
from web_api.routes.email import router as email_router
from web_api.routes.reminders import router as reminders_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if os.environ.get("SENTRY_DSN"):
    sentry_sdk.init(
        dsn=os.environ["SENTRY_DSN"],
        environment=os.environ.get("VERCEL_ENV", "development"),
        traces_sample_rate=0.0,
    )


def internal_cron_enabled() -> bool:
    return os.getenv("REMINDER_INTERNAL_CRON", "").lower() in ("true", "1", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Reports missing configuration, starts the optional in-process
    scheduler, and closes database connections on shutdown.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        print(warning)
    if not ok:
        logger.error("Required configuration missing; reminder runs will fail")

    if internal_cron_enabled():
        init_scheduler()

    yield

    print("Shutting down reminder service...")
    shutdown_scheduler()
    await close_engine()  # Close database connections


# Create FastAPI app with lifespan
app = FastAPI(
    title="Live Class Reminder Service",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Requested-With",
        "x-vercel-cron",
        "upstash-signature",
    ],
)

# Include routers
app.include_router(reminders_router)
app.include_router(email_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "database_configured": is_configured(),
        "email_relay_configured": is_mail_configured(),
        "internal_cron": internal_cron_enabled(),
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Live Class Reminder Service")
    parser.add_argument(
        "--port",
        type=int,
        default=get_api_port(),
        help="Port to run the server on (default: 8000)",
    )
    parser.add_argument(
        "--internal-cron",
        action="store_true",
        help="Run reminder dispatch in-process every 5 minutes",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.internal_cron:
        os.environ["REMINDER_INTERNAL_CRON"] = "true"

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
