"""Authentication API routes."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any, TypeVar

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from src.api.rate_limit import get_rate_limit_string, limiter
from src.modules.auth.exceptions import AuthFlowError, ServiceUnavailableError, ValidationError
from src.modules.auth.responses import (
    RESET_PAGE,
    SIGNIN_PAGE,
    TOKEN_COOKIE_NAME,
    VERIFY_PAGE,
    AuthResponder,
    auth_error_handler,
    with_email,
)
from src.modules.auth.schemas import (
    MessageResponse,
    PasswordResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignInResponse,
    VerifyRequest,
)
from src.modules.auth.service import AuthFlow

logger = structlog.get_logger()

router = APIRouter(tags=["authentication"])

M = TypeVar("M", bound=BaseModel)

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Configured during app startup
_auth_flow: AuthFlow | None = None
_responder: AuthResponder = AuthResponder()


def get_auth_flow() -> AuthFlow:
    """Get the auth flow instance.

    Raises:
        ServiceUnavailableError: Until set_auth_flow has been called.
    """
    if _auth_flow is None:
        raise ServiceUnavailableError("Authentication service not configured")
    return _auth_flow


def get_responder() -> AuthResponder:
    return _responder


def set_auth_flow(flow: AuthFlow | None, responder: AuthResponder | None = None) -> None:
    """Set the auth flow (and optionally the responder) during app startup."""
    global _auth_flow, _responder
    _auth_flow = flow
    if responder is not None:
        _responder = responder


def _describe(error: SchemaValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "body"
    return f"Invalid {field}: {first['msg']}"


def _log_invalid_request(request: Request, raw: Any, message: str) -> None:
    email = raw.get("email") if isinstance(raw, dict) else None
    logger.warning(
        "auth_request_invalid",
        operation=request.url.path.strip("/"),
        email=email if isinstance(email, str) else None,
        error=message,
    )


def body(model: type[M]) -> Callable[[Request], Awaitable[M]]:
    """Dependency parsing a JSON or form-encoded body into a schema.

    Malformed bodies raise ValidationError (400) instead of FastAPI's 422.
    """

    async def dependency(request: Request) -> M:
        content_type = request.headers.get("content-type", "")
        raw: Any
        try:
            if content_type.startswith(_FORM_TYPES):
                form = await request.form()
                raw = {key: value for key, value in form.items() if isinstance(value, str)}
            else:
                raw = await request.json()
        except ValueError as e:
            message = "Malformed request body"
            _log_invalid_request(request, None, message)
            raise ValidationError(message) from e

        try:
            return model.model_validate(raw)
        except SchemaValidationError as e:
            message = _describe(e)
            _log_invalid_request(request, raw, message)
            raise ValidationError(message) from e

    return dependency


AuthFlowDep = Annotated[AuthFlow, Depends(get_auth_flow)]
ResponderDep = Annotated[AuthResponder, Depends(get_responder)]


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account and send a verification code",
)
@limiter.limit(get_rate_limit_string)
async def register(
    request: Request,  # noqa: ARG001 - required by the rate limiter
    data: Annotated[RegisterRequest, Depends(body(RegisterRequest))],
    flow: AuthFlowDep,
    responder: ResponderDep,
) -> Response:
    outcome = await flow.register(data)
    return responder.outcome(
        outcome,
        status_code=status.HTTP_201_CREATED,
        redirect_to=with_email(VERIFY_PAGE, outcome.email),
    )


@router.post(
    "/verify",
    response_model=MessageResponse,
    summary="Confirm an email address with its one-time password",
)
async def verify(
    data: Annotated[VerifyRequest, Depends(body(VerifyRequest))],
    flow: AuthFlowDep,
    responder: ResponderDep,
) -> Response:
    outcome = await flow.verify(data.email, data.otp)
    return responder.outcome(outcome, status_code=status.HTTP_200_OK, redirect_to=SIGNIN_PAGE)


@router.post(
    "/request-password-reset",
    response_model=MessageResponse,
    summary="Send a password reset code",
)
@limiter.limit(get_rate_limit_string)
async def request_password_reset(
    request: Request,  # noqa: ARG001 - required by the rate limiter
    data: Annotated[PasswordResetRequest, Depends(body(PasswordResetRequest))],
    flow: AuthFlowDep,
    responder: ResponderDep,
) -> Response:
    outcome = await flow.request_password_reset(data.email)
    return responder.outcome(
        outcome,
        status_code=status.HTTP_200_OK,
        redirect_to=with_email(RESET_PAGE, outcome.email),
    )


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password using a reset code",
)
async def reset_password(
    data: Annotated[ResetPasswordRequest, Depends(body(ResetPasswordRequest))],
    flow: AuthFlowDep,
    responder: ResponderDep,
) -> Response:
    outcome = await flow.reset_password(data)
    return responder.outcome(outcome, status_code=status.HTTP_200_OK, redirect_to=SIGNIN_PAGE)


@router.post(
    "/signin",
    response_model=SignInResponse,
    summary="Sign in and receive the session cookie",
)
@limiter.limit(get_rate_limit_string)
async def signin(
    request: Request,  # noqa: ARG001 - required by the rate limiter
    data: Annotated[SignInRequest, Depends(body(SignInRequest))],
    flow: AuthFlowDep,
    responder: ResponderDep,
) -> Response:
    result = await flow.sign_in(data.email, data.password)
    return responder.signed_in(result)


@router.post("/signout", response_model=MessageResponse, summary="Clear the session cookie")
async def signout(request: Request, flow: AuthFlowDep, responder: ResponderDep) -> Response:
    user = flow.current_user(request.cookies.get(TOKEN_COOKIE_NAME))
    if user:
        logger.info("user_signed_out", email=user.email)
    return responder.signed_out()


@router.get("/me", response_model=SignInResponse, summary="Current session claim")
async def me(request: Request, flow: AuthFlowDep) -> Response:
    user = flow.current_user(request.cookies.get(TOKEN_COOKIE_NAME))
    if user is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"msg": "Not signed in"})
    return JSONResponse(content=SignInResponse(user=user).model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    """Render auth flow errors as {msg} bodies."""
    app.add_exception_handler(AuthFlowError, auth_error_handler)  # type: ignore[arg-type]
