"""FastAPI application entry point."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from src.api.health import router as health_router
from src.api.rate_limit import install_rate_limiting
from src.config import Settings, get_settings
from src.infrastructure.database import Database, close_database, init_database
from src.infrastructure.mail import LoggingMailSender, MailSender, SMTPMailSender
from src.infrastructure.observability import (
    configure_logging,
    init_tracing,
    shutdown_tracing,
)
from src.modules.auth.exceptions import ConfigurationError
from src.modules.auth.otp import EmailOTPService, sweep_periodically
from src.modules.auth.repository import UserRepository
from src.modules.auth.responses import AuthResponder
from src.modules.auth.routes import register_exception_handlers, set_auth_flow
from src.modules.auth.routes import router as auth_router
from src.modules.auth.service import AuthFlow
from src.modules.auth.tokens import TokenIssuer

settings = get_settings()
configure_logging(
    json_logs=settings.log_json,
    level=logging.DEBUG if settings.debug else logging.INFO,
)
logger = structlog.get_logger()


def require_jwt_secret(settings: Settings) -> str:
    """Return the signing secret or fail startup.

    Raises:
        ConfigurationError: If JWT_SECRET_KEY is unset or empty.
    """
    if settings.jwt_secret_key is None or not settings.jwt_secret_key.get_secret_value():
        raise ConfigurationError("JWT_SECRET_KEY must be set to sign session tokens")
    return settings.jwt_secret_key.get_secret_value()


def build_mail_sender(settings: Settings) -> MailSender:
    """SMTP sender when a host is configured, otherwise the logging sender."""
    if not settings.smtp_host:
        logger.warning("smtp_not_configured", fallback="log")
        return LoggingMailSender()

    return SMTPMailSender(
        settings.smtp_host,
        settings.smtp_port,
        sender=settings.smtp_sender,
        username=settings.smtp_username,
        password=settings.smtp_password.get_secret_value() if settings.smtp_password else None,
        use_tls=settings.smtp_use_tls,
        timeout_seconds=settings.smtp_timeout_seconds,
    )


def build_auth_flow(
    settings: Settings,
    database: Database,
    mail_sender: MailSender,
) -> tuple[AuthFlow, EmailOTPService]:
    """Compose the auth flow from its collaborators.

    Raises:
        ConfigurationError: If the signing secret is missing.
    """
    token_issuer = TokenIssuer(
        require_jwt_secret(settings),
        algorithm=settings.jwt_algorithm,
        expire_hours=settings.jwt_expire_hours,
    )
    otp_service = EmailOTPService(
        mail_sender,
        length=settings.otp_length,
        ttl_minutes=settings.otp_ttl_minutes,
        max_attempts=settings.otp_max_attempts,
    )
    flow = AuthFlow(
        UserRepository(database),
        otp_service,
        token_issuer,
        require_verified_signin=settings.require_verified_signin,
    )
    return flow, otp_service


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup/shutdown."""
    # Fail before touching the database when the secret is missing
    require_jwt_secret(settings)

    database = await init_database(settings.database_path)

    flow, otp_service = build_auth_flow(settings, database, build_mail_sender(settings))
    set_auth_flow(
        flow,
        AuthResponder(settings.response_mode, secure_cookies=settings.secure_cookies),
    )
    sweeper = asyncio.create_task(
        sweep_periodically(otp_service, settings.otp_sweep_interval_seconds)
    )
    logger.info(
        "auth_flow_initialized",
        response_mode=settings.response_mode,
        require_verified_signin=settings.require_verified_signin,
    )

    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    set_auth_flow(None)
    await close_database()
    shutdown_tracing()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

if settings.tracing_enabled:
    init_tracing(
        settings.app_name,
        settings.app_version,
        otlp_endpoint=settings.otlp_endpoint,
        console_export=settings.tracing_console_export,
        sample_rate=settings.tracing_sample_rate,
        app=app,
    )

install_rate_limiting(app)
register_exception_handlers(app)

app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(auth_router)
