# apps/api/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from apps.api.ratelimit import limiter, rate_limit_exceeded_handler
from apps.api.routers import admin, applications, auth, chat, files, notifications, profile
from core.config import Settings, settings
from core.errors import FormValidationError, PortalError
from core.logging import configure_logging
from services.admissions.numbers import NumberGenerator
from services.admissions.service import AdmissionService
from services.identity import IdentityService
from services.llm.gateway_client import ChatGatewayClient
from services.notifications.sender import ResendStatusNotifier
from services.persistence.platform import DataPlatform, build_platform
from services.review.authorization import AuthorizationService
from services.review.workflow import ReviewWorkflow
from services.stats.aggregator import RealtimeStatsAggregator

logger = logging.getLogger(__name__)


def wire_services(app: FastAPI, platform: DataPlatform, cfg: Settings) -> None:
    """Build every service over one data platform and hang them on app.state."""
    numbers = NumberGenerator()
    notifier = ResendStatusNotifier(
        api_key=cfg.RESEND_API_KEY,
        sender=cfg.EMAIL_FROM,
        url=cfg.RESEND_URL,
        timezone_name=cfg.NOTIFY_TIMEZONE,
    )
    app.state.platform = platform
    app.state.identity = IdentityService(platform.db)
    app.state.admissions = AdmissionService(platform, numbers, cfg.MAX_UPLOAD_BYTES)
    app.state.notifier = notifier
    app.state.review = ReviewWorkflow(
        platform, notifier=notifier, numbers=numbers, authz=AuthorizationService(platform.db)
    )
    app.state.stats = RealtimeStatsAggregator(platform.db, platform.feed)
    app.state.chat = ChatGatewayClient(
        url=cfg.CHAT_GATEWAY_URL,
        api_key=cfg.CHAT_GATEWAY_KEY,
        model=cfg.CHAT_MODEL,
        history_limit=cfg.CHAT_HISTORY_LIMIT,
        timeout_s=cfg.CHAT_TIMEOUT_S,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # tests wire their own platform before startup
    if getattr(app.state, "platform", None) is None:
        wire_services(app, build_platform(settings), settings)
    app.state.stats.start()
    logger.info("admission portal API started (backend=%s)", settings.DATA_BACKEND)
    try:
        yield
    finally:
        app.state.stats.stop()
        app.state.platform.close()


async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    body = {"detail": exc.message}
    if isinstance(exc, FormValidationError):
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Admission Portal API", version="0.1.0", lifespan=lifespan)
    app.state.limiter = limiter
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    for module in (auth, profile, applications, admin, notifications, chat, files):
        app.include_router(module.router)
    return app


app = create_app()
