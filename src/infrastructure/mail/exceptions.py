"""Exceptions for outgoing mail."""


class MailError(Exception):
    """Base exception for mail operations."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MailDeliveryError(MailError):
    """Raised when a message could not be handed to the mail server."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Failed to deliver mail to {recipient}: {reason}")
