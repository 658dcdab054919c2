"""
Chat sessions for Pixel Pilot.

The chatroom store and the simulated message exchange that feeds it.
"""

from pixelpilot.chat.exchange import (
    ExchangeEvent,
    ExchangeEventType,
    MessageExchange,
    echo_reply,
)
from pixelpilot.chat.models import Chatroom, ChatState, Message, Sender
from pixelpilot.chat.store import CHAT_STORAGE_KEY, ChatStore

__all__ = [
    "CHAT_STORAGE_KEY",
    "ChatState",
    "ChatStore",
    "Chatroom",
    "ExchangeEvent",
    "ExchangeEventType",
    "Message",
    "MessageExchange",
    "Sender",
    "echo_reply",
]
