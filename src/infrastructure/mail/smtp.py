"""SMTP-backed mail senders."""

import asyncio
import smtplib
from email.mime.text import MIMEText

import structlog

from src.infrastructure.mail.exceptions import MailDeliveryError

logger = structlog.get_logger()

OTP_SUBJECT = "Your verification code"


def render_otp_body(code: str, ttl_minutes: int) -> str:
    """Plain-text body for a one-time password email."""
    return (
        f"Your verification code is: {code}\n\n"
        f"The code expires in {ttl_minutes} minutes. "
        "If you did not request it, you can ignore this email.\n\n"
        "---\n"
        "This is an automated message. Please do not reply to this email.\n"
    )


class SMTPMailSender:
    """Send one-time passwords through an SMTP server.

    smtplib is blocking, so each message is sent from a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the sender.

        Args:
            host: SMTP server hostname.
            port: SMTP server port.
            sender: Address used in the From header.
            username: Optional login user.
            password: Optional login password.
            use_tls: Whether to upgrade the connection with STARTTLS.
            timeout_seconds: Socket timeout for the SMTP session.
        """
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout_seconds

    def _build_message(self, recipient: str, code: str, ttl_minutes: int) -> MIMEText:
        message = MIMEText(render_otp_body(code, ttl_minutes), "plain")
        message["From"] = self._sender
        message["To"] = recipient
        message["Subject"] = OTP_SUBJECT
        return message

    def _send_blocking(self, recipient: str, message: MIMEText) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls:
                server.starttls()
            if self._username and self._password:
                server.login(self._username, self._password)
            server.sendmail(self._sender, [recipient], message.as_string())

    async def send_otp(self, recipient: str, code: str, *, ttl_minutes: int) -> None:
        """Send a one-time password email.

        Raises:
            MailDeliveryError: If the SMTP session fails.
        """
        message = self._build_message(recipient, code, ttl_minutes)

        try:
            await asyncio.to_thread(self._send_blocking, recipient, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "smtp_send_failed",
                recipient=recipient,
                host=self._host,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise MailDeliveryError(recipient, str(e)) from e

        logger.info("otp_email_sent", recipient=recipient)


class LoggingMailSender:
    """Development sender that writes codes to the log instead of mailing them."""

    async def send_otp(self, recipient: str, code: str, *, ttl_minutes: int) -> None:
        # Deliberately logs the code itself; never select this in production
        logger.warning(
            "otp_email_not_sent",
            recipient=recipient,
            otp_preview=code,
            ttl_minutes=ttl_minutes,
        )
