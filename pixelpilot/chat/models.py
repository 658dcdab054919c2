"""Chat data types."""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """Single chat message. Immutable once created."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    content: str
    sender: Sender
    timestamp: datetime = Field(default_factory=utc_now)
    image: str | None = None  # data URI of an attached image


class Chatroom(BaseModel):
    """A titled, append-only conversation."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str
    messages: tuple[Message, ...] = ()

    def with_message(self, message: Message) -> "Chatroom":
        return self.model_copy(update={"messages": (*self.messages, message)})

    def with_title(self, title: str) -> "Chatroom":
        return self.model_copy(update={"title": title})


class ChatState(BaseModel):
    """Blob written under the ``chat-storage`` key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    chatrooms: list[Chatroom] = Field(default_factory=list)
    active_chatroom_id: str | None = None
