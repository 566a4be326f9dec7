"""Exceptions raised by the webhook pipeline and the Send API client."""


class MessengerBotError(Exception):
    """Base exception for messengerbot errors."""

    pass


class PayloadDecodeError(MessengerBotError):
    """Raised when a webhook body is not valid UTF-8 encoded JSON."""

    pass


class SendFailure(MessengerBotError):
    """Raised when an outbound message could not be delivered.

    Attributes:
        status_code: HTTP status returned by the platform, or None when the
            request never got a response (network error, timeout).
        recipient: Recipient identity the message was addressed to.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        recipient: object = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.recipient = recipient
