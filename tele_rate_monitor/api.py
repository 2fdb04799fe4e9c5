"""Standalone HTTP alert service.

Exposes the alert core over JSON. Every response carries ``success``; errors
are ``{"success": false, "error": ...}`` and malformed payloads are rejected
with 400 before they reach the store.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from . import config
from .errors import DeliveryError, ValidationError
from .monitor import RateMonitor, build_monitor
from .notify import DemoSender
from .runtime import uptime_seconds

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# Request models
class RegisterAlertRequest(BaseModel):
    recipient: str = Field(
        min_length=1, validation_alias=AliasChoices("recipient", "phoneNumber")
    )
    threshold: float | None = Field(default=None, gt=0)
    enabled: bool = True


class CheckAlertsRequest(BaseModel):
    currentRate: float = Field(gt=0)


class SendAlertRequest(BaseModel):
    recipient: str = Field(
        min_length=1, validation_alias=AliasChoices("recipient", "phoneNumber")
    )
    message: str = Field(min_length=1)


def _error(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def get_monitor(request: Request) -> RateMonitor:
    return request.app.state.monitor


def _provider_configured(monitor: RateMonitor) -> bool:
    return monitor.dispatcher.sender.name != DemoSender.name


def _active_alerts(monitor: RateMonitor) -> int:
    return len(monitor.store.enabled_rules())


@router.post("/register-alert")
async def register_alert(
    payload: RegisterAlertRequest, monitor: RateMonitor = Depends(get_monitor)
) -> dict:
    rule = await monitor.save_alert_rule(
        payload.recipient, payload.threshold, payload.enabled
    )
    return {
        "success": True,
        "message": (
            "Alert registered successfully" if rule.enabled else "Alert disabled"
        ),
        "activeAlerts": _active_alerts(monitor),
    }


@router.post("/check-alerts")
async def check_alerts(
    payload: CheckAlertsRequest, monitor: RateMonitor = Depends(get_monitor)
) -> dict:
    check = await monitor.check_rate(payload.currentRate)
    return {
        "success": True,
        "triggeredAlerts": len(check.events),
        "alerts": [
            {
                "recipient": event.recipient,
                "threshold": event.threshold,
                "currentRate": event.observed_rate,
            }
            for event in check.events
        ],
        "warnings": check.warnings,
    }


@router.post("/reset-alerts")
async def reset_alerts(monitor: RateMonitor = Depends(get_monitor)) -> dict:
    await monitor.reset_alerts()
    return {
        "success": True,
        "message": "All alerts reset successfully",
        "activeAlerts": _active_alerts(monitor),
    }


@router.get("/alerts-status")
async def alerts_status(monitor: RateMonitor = Depends(get_monitor)) -> dict:
    statuses = monitor.alert_status()
    return {
        "success": True,
        "totalAlerts": len(statuses),
        "alerts": [
            {
                "recipient": status.masked_recipient,
                "threshold": status.rule.threshold,
                "enabled": status.rule.enabled,
                "triggered": status.triggered,
                "triggeredAt": status.episode.fired_at if status.triggered else None,
            }
            for status in statuses
        ],
        "providerConfigured": _provider_configured(monitor),
    }


@router.post("/send-alert")
async def send_alert(
    payload: SendAlertRequest, monitor: RateMonitor = Depends(get_monitor)
) -> dict:
    receipt = await monitor.dispatcher.send_text(payload.recipient, payload.message)
    return {
        "success": True,
        "message": (
            "Alert logged (demo mode)" if receipt.demo else "Alert sent successfully"
        ),
        "demo": receipt.demo,
        "messageId": receipt.message_id,
    }


@router.get("/health")
async def health(monitor: RateMonitor = Depends(get_monitor)) -> dict:
    return {
        "success": True,
        "message": "Alert service is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "providerConfigured": _provider_configured(monitor),
        "activeAlerts": _active_alerts(monitor),
        "uptimeS": round(uptime_seconds(), 1),
    }


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = first.get("msg", "Invalid request")
        logger.warning("Rejected payload: %s", errors)
        return _error(400, f"{field}: {detail}" if field else detail)

    @app.exception_handler(ValidationError)
    async def handle_validation(_request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("Validation failed: %s", exc)
        return _error(400, str(exc))

    @app.exception_handler(DeliveryError)
    async def handle_delivery(_request: Request, exc: DeliveryError) -> JSONResponse:
        logger.error("Delivery failed: %s", exc.reason)
        return _error(502, "Failed to send alert")

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error")
        return _error(500, "Internal server error")


def create_app(monitor: RateMonitor | None = None, bot=None) -> FastAPI:
    """Build the alert service around a monitor.

    Args:
        monitor: Monitoring session; built from configuration when omitted.
        bot: Optional ``telegram.Bot`` used for delivery. Its lifecycle is
            tied to the app.
    """
    if monitor is None:
        monitor = build_monitor(bot=bot, state_file=config.STATE_FILE)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if bot is not None:
            await bot.initialize()
        try:
            yield
        finally:
            if bot is not None:
                await bot.shutdown()
            monitor.store.save()

    app = FastAPI(title="tele-rate-monitor alerts", lifespan=lifespan)
    app.state.monitor = monitor
    app.include_router(router)
    register_error_handlers(app)
    return app


def run() -> None:
    import uvicorn
    from telegram import Bot

    from .logger import setup_logging

    setup_logging()
    bot = Bot(config.TOKEN) if config.TOKEN else None
    app = create_app(bot=bot)
    logger.info(
        "Starting alert service on %s:%s", config.settings.API_HOST, config.settings.API_PORT
    )
    uvicorn.run(
        app,
        host=config.settings.API_HOST,
        port=config.settings.API_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
