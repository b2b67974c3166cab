"""Outgoing mail infrastructure for one-time password delivery."""

from src.infrastructure.mail.exceptions import MailDeliveryError, MailError
from src.infrastructure.mail.protocol import MailSender
from src.infrastructure.mail.smtp import LoggingMailSender, SMTPMailSender

__all__ = [
    "LoggingMailSender",
    "MailDeliveryError",
    "MailError",
    "MailSender",
    "SMTPMailSender",
]
