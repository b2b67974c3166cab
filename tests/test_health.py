"""Tests for application startup and the health endpoint."""

import pytest
from fastapi.testclient import TestClient

from src.config import Settings, get_settings
from src.infrastructure.mail import LoggingMailSender, SMTPMailSender
from src.main import app, build_mail_sender, lifespan, require_jwt_secret
from src.modules.auth.exceptions import ConfigurationError


def test_health_check_returns_healthy() -> None:
    """Health endpoint should return healthy status."""
    with TestClient(app) as client:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == get_settings().app_version


def test_app_serves_auth_routes() -> None:
    """The composed app should run the flow with the configured responder."""
    with TestClient(app) as client:
        response = client.post("/signin", json={"email": "nobody@x.com", "password": "p"})

        assert response.status_code == 400
        assert response.json() == {"msg": "Invalid credentials"}


class TestStartupConfiguration:
    """Tests for startup-time configuration checks."""

    def test_missing_secret_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
            require_jwt_secret(Settings(jwt_secret_key=None))

    def test_empty_secret_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            require_jwt_secret(Settings(jwt_secret_key=""))

    def test_secret_is_returned(self) -> None:
        assert require_jwt_secret(Settings(jwt_secret_key="s3cret")) == "s3cret"

    async def test_lifespan_refuses_to_start_without_secret(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("src.main.settings", Settings(jwt_secret_key=None))

        with pytest.raises(ConfigurationError):
            async with lifespan(app):
                pass

    def test_logging_sender_without_smtp_host(self) -> None:
        assert isinstance(build_mail_sender(Settings(smtp_host=None)), LoggingMailSender)

    def test_smtp_sender_with_host(self) -> None:
        sender = build_mail_sender(Settings(smtp_host="smtp.example.com", smtp_password="pw"))
        assert isinstance(sender, SMTPMailSender)

    def test_secure_cookies_follow_environment(self) -> None:
        assert Settings(environment="production").secure_cookies
        assert not Settings(environment="development").secure_cookies
