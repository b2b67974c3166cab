"""Rendering of auth flow outcomes as JSON bodies or browser redirects."""

from typing import Literal
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from src.modules.auth.exceptions import AuthFlowError
from src.modules.auth.schemas import MessageResponse, SignInResponse, SignInResult

ResponseMode = Literal["json", "redirect"]

TOKEN_COOKIE_NAME = "token"

# Pages a browser is sent to after each step in redirect mode
VERIFY_PAGE = "/verify"
SIGNIN_PAGE = "/signin"
RESET_PAGE = "/reset-password"
HOME_PAGE = "/"


def with_email(path: str, email: str | None) -> str:
    """Append the email as a query parameter when there is one."""
    if not email:
        return path
    return f"{path}?{urlencode({'email': email})}"


class AuthResponder:
    """Builds HTTP responses for flow outcomes in the configured mode.

    The JSON and redirect variants differ only here; the flow itself and
    the error responses are shared.
    """

    def __init__(self, mode: ResponseMode = "json", *, secure_cookies: bool = False) -> None:
        """Initialize the responder.

        Args:
            mode: "json" for API clients, "redirect" for browser form posts.
            secure_cookies: Set the Secure attribute on the session cookie.
        """
        self.mode = mode
        self._secure_cookies = secure_cookies

    def outcome(self, body: BaseModel, *, status_code: int, redirect_to: str) -> Response:
        """Render a successful step."""
        if self.mode == "redirect":
            return RedirectResponse(url=redirect_to, status_code=303)
        return JSONResponse(
            status_code=status_code,
            content=body.model_dump(mode="json", exclude_none=True),
        )

    def signed_in(self, result: SignInResult) -> Response:
        """Render a sign-in and attach the session cookie."""
        response = self.outcome(
            SignInResponse(user=result.user),
            status_code=200,
            redirect_to=HOME_PAGE,
        )
        response.set_cookie(
            key=TOKEN_COOKIE_NAME,
            value=result.token,
            max_age=result.expires_in,
            httponly=True,
            samesite="strict",
            secure=self._secure_cookies,
        )
        return response

    def signed_out(self) -> Response:
        """Render a sign-out and clear the session cookie."""
        response = self.outcome(
            MessageResponse(msg="Signed out"),
            status_code=200,
            redirect_to=SIGNIN_PAGE,
        )
        response.delete_cookie(
            key=TOKEN_COOKIE_NAME,
            httponly=True,
            samesite="strict",
            secure=self._secure_cookies,
        )
        return response


async def auth_error_handler(request: Request, exc: AuthFlowError) -> JSONResponse:  # noqa: ARG001
    """Render any auth flow error as {msg} with the error's status code."""
    return JSONResponse(status_code=exc.status_code, content={"msg": exc.message})
