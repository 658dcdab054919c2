"""
Chat session store.

Owns the chatroom collection and the active selection, and writes the
whole collection to storage after every mutation.
"""

from collections.abc import Callable, Sequence

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from pixelpilot.chat.models import Chatroom, ChatState, Message, new_id
from pixelpilot.core.exceptions import NotFoundError, ValidationError
from pixelpilot.core.storage import StorageBackend

CHAT_STORAGE_KEY = "chat-storage"

ChatListener = Callable[["ChatStore"], None]


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValidationError.single("title", "Title cannot be empty.")
    return cleaned


class ChatStore:
    """
    Chatrooms in insertion order plus the active chatroom id.

    Usage:
        store = ChatStore(storage)
        store.rehydrate()
        room = store.create_chatroom("chatroom-1")
        store.add_message(room.id, message)
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage
        self._chatrooms: list[Chatroom] = []
        self._active_chatroom_id: str | None = None
        self._issued_ids: set[str] = set()
        self._listeners: list[ChatListener] = []

    # =========================================================================
    # READ SIDE
    # =========================================================================

    @property
    def chatrooms(self) -> Sequence[Chatroom]:
        return tuple(self._chatrooms)

    @property
    def active_chatroom_id(self) -> str | None:
        return self._active_chatroom_id

    @property
    def active_chatroom(self) -> Chatroom | None:
        if self._active_chatroom_id is None:
            return None
        return self.get_chatroom(self._active_chatroom_id)

    def get_chatroom(self, chatroom_id: str) -> Chatroom | None:
        for room in self._chatrooms:
            if room.id == chatroom_id:
                return room
        return None

    def search_chatrooms(self, term: str) -> list[Chatroom]:
        """Chatrooms whose title contains ``term``, ignoring case."""
        needle = term.strip().lower()
        return [room for room in self._chatrooms if needle in room.title.lower()]

    def next_default_title(self) -> str:
        return f"chatroom-{len(self._chatrooms) + 1}"

    def subscribe(self, listener: ChatListener) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_chatroom(self, title: str) -> Chatroom:
        """Append a new empty chatroom and make it active.

        Raises:
            ValidationError: If ``title`` is blank.
        """
        room = Chatroom(id=self._allocate_id(), title=_clean_title(title))
        self._chatrooms.append(room)
        self._active_chatroom_id = room.id
        logger.debug(f"Created chatroom {room.id} '{room.title}'")
        self._commit()
        return room

    def delete_chatroom(self, chatroom_id: str) -> None:
        """Remove a chatroom, clearing the selection if it was active.

        Raises:
            NotFoundError: If no chatroom has ``chatroom_id``.
        """
        index = self._index_of(chatroom_id)
        del self._chatrooms[index]
        if self._active_chatroom_id == chatroom_id:
            self._active_chatroom_id = None
        logger.debug(f"Deleted chatroom {chatroom_id}")
        self._commit()

    def rename_chatroom(self, chatroom_id: str, new_title: str) -> Chatroom:
        """Replace a chatroom's title.

        Raises:
            ValidationError: If ``new_title`` is blank; the title is kept.
            NotFoundError: If no chatroom has ``chatroom_id``.
        """
        title = _clean_title(new_title)
        index = self._index_of(chatroom_id)
        old_title = self._chatrooms[index].title
        self._chatrooms[index] = self._chatrooms[index].with_title(title)
        logger.info(f"Chatroom renamed from '{old_title}' to '{title}'")
        self._commit()
        return self._chatrooms[index]

    def set_active_chatroom_id(self, chatroom_id: str | None) -> None:
        """Select a chatroom, or clear the selection with None.

        Raises:
            NotFoundError: If ``chatroom_id`` names no chatroom.
        """
        if chatroom_id is not None:
            self._index_of(chatroom_id)
        if chatroom_id == self._active_chatroom_id:
            return
        self._active_chatroom_id = chatroom_id
        self._commit()

    def add_message(self, chatroom_id: str, message: Message) -> bool:
        """Append ``message`` to a chatroom.

        Returns:
            False when the chatroom no longer exists (nothing is written).
        """
        for index, room in enumerate(self._chatrooms):
            if room.id == chatroom_id:
                self._chatrooms[index] = room.with_message(message)
                self._commit()
                return True

        logger.debug(f"Dropping message {message.id} for missing chatroom {chatroom_id}")
        return False

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def rehydrate(self) -> None:
        """Replace in-memory state with the persisted collection."""
        state = self.storage.read_state(CHAT_STORAGE_KEY)
        if state is None:
            return

        try:
            persisted = ChatState.model_validate(state)
        except PydanticValidationError as e:
            logger.warning(f"Ignoring invalid persisted chat state: {e.error_count()} error(s)")
            return

        chatrooms: list[Chatroom] = []
        seen: set[str] = set()
        for room in persisted.chatrooms:
            if room.id in seen:
                logger.warning(f"Dropping duplicate persisted chatroom {room.id}")
                continue
            seen.add(room.id)
            chatrooms.append(room)

        active = persisted.active_chatroom_id
        if active is not None and active not in seen:
            logger.warning(f"Clearing dangling active chatroom {active}")
            active = None

        self._chatrooms = chatrooms
        self._active_chatroom_id = active
        self._issued_ids |= seen
        logger.info(f"Restored {len(chatrooms)} chatroom(s)")
        self._notify()

    def snapshot(self) -> ChatState:
        return ChatState(
            chatrooms=list(self._chatrooms),
            active_chatroom_id=self._active_chatroom_id,
        )

    def _commit(self) -> None:
        self.storage.write_state(
            CHAT_STORAGE_KEY, self.snapshot().model_dump(by_alias=True, mode="json")
        )
        self._notify()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _allocate_id(self) -> str:
        chatroom_id = new_id()
        while chatroom_id in self._issued_ids:
            chatroom_id = new_id()
        self._issued_ids.add(chatroom_id)
        return chatroom_id

    def _index_of(self, chatroom_id: str) -> int:
        for index, room in enumerate(self._chatrooms):
            if room.id == chatroom_id:
                return index
        raise NotFoundError(chatroom_id)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
