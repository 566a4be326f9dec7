"""Facebook Messenger webhook adapter."""

from messengerbot.bot import MessengerBot
from messengerbot.exceptions import MessengerBotError, PayloadDecodeError, SendFailure
from messengerbot.models.messenger import TextMessage

__all__ = [
    "MessengerBot",
    "MessengerBotError",
    "PayloadDecodeError",
    "SendFailure",
    "TextMessage",
]
