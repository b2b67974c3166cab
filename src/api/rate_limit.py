"""Rate limiting configuration using slowapi."""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.config import get_settings


def _get_rate_limit_key(request: Request) -> str:
    """Get the rate limit key from the request.

    Keyed by client address: the limited endpoints run before a session exists.
    """
    addr: str = get_remote_address(request)
    return addr


limiter = Limiter(
    key_func=_get_rate_limit_key,
    enabled=get_settings().rate_limit_enabled,
)


def get_rate_limit_string() -> str:
    """Get the rate limit string from settings."""
    settings = get_settings()
    return f"{settings.rate_limit_requests}/{settings.rate_limit_window}"


async def rate_limit_exceeded_handler(
    request: Request,  # noqa: ARG001
    _exc: RateLimitExceeded,
) -> Response:
    """Answer throttled requests in the same {msg} shape as other errors."""
    return JSONResponse(
        status_code=429,
        content={"msg": "Too many requests. Please wait a moment and try again."},
    )


def install_rate_limiting(app: FastAPI) -> None:
    """Attach the limiter and its 429 handler to an application."""
    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded,
        rate_limit_exceeded_handler,  # type: ignore[arg-type]
    )
