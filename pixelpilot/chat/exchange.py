"""
Simulated message exchange.

A send appends the user's message right away, marks the chatroom as
composing, and lands an echo-style assistant reply after a random
latency. Replies in one chatroom are serialized: each one's latency
starts when the previous reply lands, so a chatroom reads
``[u1, u2, a1, a2]`` when two messages go out back to back.
"""

import random
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger

from pixelpilot.chat.models import Message, Sender, utc_now
from pixelpilot.chat.store import ChatStore
from pixelpilot.core.exceptions import NotFoundError, ValidationError
from pixelpilot.core.scheduler import Scheduler, TimerHandle


class ExchangeEventType(str, Enum):
    """Events emitted to exchange listeners."""

    SENT = "sent"
    COMPOSING_STARTED = "composing_started"
    REPLIED = "replied"
    COMPOSING_STOPPED = "composing_stopped"
    CANCELLED = "cancelled"


@dataclass
class ExchangeEvent:
    """Something that happened in one chatroom's exchange."""

    event_type: ExchangeEventType
    chatroom_id: str
    message: Message | None = None


ExchangeListener = Callable[[ExchangeEvent], None]


def echo_reply(content: str, assistant_name: str = "Gemini") -> str:
    """Build the simulated assistant reply for ``content``."""
    return f"{assistant_name}'s response to - \n{content}\n{content}\n{content}"


@dataclass
class _RoomQueue:
    """Replies owed to one chatroom, oldest first."""

    prompts: deque[str] = field(default_factory=deque)
    timer: TimerHandle | None = None


class MessageExchange:
    """
    Drives send -> latency -> reply for every chatroom.

    Usage:
        exchange = MessageExchange(store, scheduler)
        exchange.send(room.id, "hi")
        exchange.is_composing(room.id)  # True until the reply lands

    Attributes:
        reply_delay_range: (min, max) seconds of simulated latency.
        assistant_name: Name used in echo replies.
    """

    def __init__(
        self,
        store: ChatStore,
        scheduler: Scheduler,
        reply_delay_range: tuple[float, float] = (3.0, 4.0),
        assistant_name: str = "Gemini",
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        low, high = reply_delay_range
        if low < 0 or high < low:
            raise ValueError(f"Invalid reply delay range: {reply_delay_range}")

        self.store = store
        self.scheduler = scheduler
        self.reply_delay_range = (low, high)
        self.assistant_name = assistant_name
        self.rng = rng or random.Random()
        self.clock = clock

        self._rooms: dict[str, _RoomQueue] = {}
        self._listeners: list[ExchangeListener] = []

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def is_composing(self, chatroom_id: str) -> bool:
        """True while a reply is owed to the chatroom."""
        return chatroom_id in self._rooms

    def pending_replies(self, chatroom_id: str) -> int:
        queue = self._rooms.get(chatroom_id)
        return len(queue.prompts) if queue else 0

    def subscribe(self, listener: ExchangeListener) -> Callable[[], None]:
        """Register an event listener.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # EXCHANGE
    # =========================================================================

    def send(self, chatroom_id: str, content: str, image: str | None = None) -> Message:
        """Append a user message and schedule the assistant's reply.

        Args:
            chatroom_id: Target chatroom.
            content: Message text.
            image: Optional image data URI.

        Returns:
            The appended user message.

        Raises:
            ValidationError: If there is neither text nor an image.
            NotFoundError: If the chatroom does not exist.
        """
        if not content.strip() and not image:
            raise ValidationError.single("content", "Message cannot be empty.")
        if self.store.get_chatroom(chatroom_id) is None:
            raise NotFoundError(chatroom_id)

        message = Message(content=content, sender=Sender.USER, timestamp=self.clock(), image=image)
        self.store.add_message(chatroom_id, message)
        self._emit(ExchangeEventType.SENT, chatroom_id, message)

        queue = self._rooms.get(chatroom_id)
        if queue is None:
            queue = self._rooms[chatroom_id] = _RoomQueue()
            queue.prompts.append(content)
            self._emit(ExchangeEventType.COMPOSING_STARTED, chatroom_id)
            self._start_reply_timer(chatroom_id, queue)
        else:
            queue.prompts.append(content)
            logger.debug(
                f"Queued reply in {chatroom_id} ({len(queue.prompts)} pending)"
            )

        return message

    def _start_reply_timer(self, chatroom_id: str, queue: _RoomQueue) -> None:
        delay = self.rng.uniform(*self.reply_delay_range)
        queue.timer = self.scheduler.schedule_after(delay, lambda: self._deliver(chatroom_id))
        logger.debug(f"Assistant composing in {chatroom_id} for {delay:.2f}s")

    def _deliver(self, chatroom_id: str) -> None:
        queue = self._rooms.get(chatroom_id)
        if queue is None or not queue.prompts:
            return

        prompt = queue.prompts.popleft()
        reply = Message(
            content=echo_reply(prompt, self.assistant_name),
            sender=Sender.ASSISTANT,
            timestamp=self.clock(),
        )
        delivered = self.store.add_message(chatroom_id, reply)

        if not delivered:
            # Chatroom vanished; nothing left to reply to.
            self._drop(chatroom_id, ExchangeEventType.CANCELLED)
            return

        self._emit(ExchangeEventType.REPLIED, chatroom_id, reply)

        if queue.prompts:
            self._start_reply_timer(chatroom_id, queue)
        else:
            self._drop(chatroom_id, ExchangeEventType.COMPOSING_STOPPED)

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def cancel(self, chatroom_id: str) -> bool:
        """Abandon replies owed to a chatroom.

        Returns:
            True if anything was pending.
        """
        if chatroom_id not in self._rooms:
            return False
        self._drop(chatroom_id, ExchangeEventType.CANCELLED)
        logger.debug(f"Cancelled pending replies in {chatroom_id}")
        return True

    def dispose(self) -> None:
        """Cancel every pending reply and drop listeners."""
        for chatroom_id in list(self._rooms):
            queue = self._rooms.pop(chatroom_id)
            if queue.timer is not None:
                queue.timer.cancel()
        self._listeners.clear()

    def _drop(self, chatroom_id: str, event_type: ExchangeEventType) -> None:
        queue = self._rooms.pop(chatroom_id, None)
        if queue is not None and queue.timer is not None:
            queue.timer.cancel()
        self._emit(event_type, chatroom_id)

    def _emit(
        self,
        event_type: ExchangeEventType,
        chatroom_id: str,
        message: Message | None = None,
    ) -> None:
        event = ExchangeEvent(event_type=event_type, chatroom_id=chatroom_id, message=message)
        for listener in list(self._listeners):
            listener(event)
