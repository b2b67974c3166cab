"""Protocol definition for one-time password delivery."""

from typing import Protocol


class MailSender(Protocol):
    """Protocol for sending one-time password codes by email.

    Implementations raise MailDeliveryError when the message could not
    be handed off for delivery.
    """

    async def send_otp(self, recipient: str, code: str, *, ttl_minutes: int) -> None:
        """Send a one-time password to an address.

        Args:
            recipient: Destination email address.
            code: The one-time password in cleartext.
            ttl_minutes: Minutes until the code expires, shown to the user.
        """
        ...
