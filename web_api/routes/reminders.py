"""
Reminder dispatch trigger routes.

Endpoints:
- POST /api/cron/reminders - Run one reminder dispatch (called every 5 minutes)
- POST /api/cron/live-booth-reminders - Legacy alias (cron secret deployments)
- POST /api/cron/qstash-reminders - Legacy alias (signed webhook deployments)

All three run the same engine; the authenticator comes from
REMINDER_AUTH_MODE, not from the path.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from core.reminders import (
    ConfigurationError,
    DispatchConfig,
    SessionFetchError,
    TriggerAuthError,
    TriggerRequest,
    build_authenticator,
    require_trigger,
    run_reminder_dispatch,
)

router = APIRouter(prefix="/api/cron", tags=["reminders"])

logger = logging.getLogger(__name__)

TRIGGER_PATHS = ("/reminders", "/live-booth-reminders", "/qstash-reminders")
REJECTED_METHODS = ["GET", "PUT", "PATCH", "DELETE"]


def load_dispatch_config() -> DispatchConfig:
    """Build the per-invocation config. Patched in tests."""
    return DispatchConfig.from_env()


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


async def trigger_reminders(request: Request):
    """
    Authenticate the scheduler, run one dispatch, return the summary.

    200 on completion (including nothing to do), 401 on failed
    authentication, 500 on missing configuration or session query failure.
    """
    try:
        config = load_dispatch_config()
    except ConfigurationError as e:
        logger.error(f"Reminder trigger misconfigured: {e}")
        return _error(500, "Server configuration error")

    body = await request.body()
    trigger = TriggerRequest.build(request.headers, body, str(request.url))
    try:
        require_trigger(build_authenticator(config), trigger)
    except TriggerAuthError:
        logger.warning(f"Rejected reminder trigger from {request.client}")
        return _error(401, "Unauthorized")

    try:
        result = await run_reminder_dispatch(config)
    except SessionFetchError:
        return _error(500, "Error fetching sessions")
    except Exception as e:
        logger.error(f"Reminder dispatch failed: {e}")
        return _error(500, "Internal server error", error=str(e))

    return result.to_response()


async def preflight() -> Response:
    """CORS preflight without Origin headers still gets a bare 200."""
    return Response(status_code=200)


async def method_not_allowed() -> JSONResponse:
    return _error(405, "Method not allowed")


for _path in TRIGGER_PATHS:
    router.add_api_route(_path, trigger_reminders, methods=["POST"])
    router.add_api_route(
        _path, preflight, methods=["OPTIONS"], include_in_schema=False
    )
    router.add_api_route(
        _path, method_not_allowed, methods=REJECTED_METHODS, include_in_schema=False
    )
