"""Pixel Pilot client facade - wires the engine together from settings.

This is the whole contract a rendering layer needs: read the auth and
chat state, call the operations below, and subscribe to changes.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from typing import Any

from loguru import logger

from pixelpilot.auth.countries import CountryDirectory, CountrySource, RestCountriesSource
from pixelpilot.auth.engine import AuthEngine
from pixelpilot.auth.models import Country
from pixelpilot.chat.exchange import MessageExchange
from pixelpilot.chat.models import Chatroom, Message
from pixelpilot.chat.store import ChatStore
from pixelpilot.core.config import Settings, get_settings
from pixelpilot.core.exceptions import DirectoryLoadError, ValidationError
from pixelpilot.core.scheduler import AsyncioScheduler, Scheduler
from pixelpilot.core.storage import FileStorage, StorageBackend
from pixelpilot.timing.rate_limit import debounce, throttle


class PixelPilot:
    """
    Main Pixel Pilot client.

    Builds the authentication engine, country directory, chat store and
    message exchange on a shared scheduler and storage.

    Usage:
        client = PixelPilot(storage=MemoryStorage(), scheduler=ManualScheduler())
        client.start()
        client.auth.request_otp("+91", "9876543210")
        room, first = client.start_chat("hello")

    Attributes:
        on_chatroom_results: Receives debounced chatroom search results.
        on_country_results: Receives throttled country search results.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        storage: StorageBackend | None = None,
        scheduler: Scheduler | None = None,
        country_source: CountrySource | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Optional settings override. Uses default if not provided.
            storage: Persistence backend. Defaults to FileStorage in the
                configured storage directory.
            scheduler: Timer source. Defaults to the running asyncio loop.
            country_source: Country reference data. Defaults to restcountries.
            rng: Random source for reply latency.
        """
        self.settings = settings or get_settings()
        self.storage = storage or FileStorage(self.settings.pixelpilot_storage_dir)
        self.scheduler = scheduler or AsyncioScheduler()

        self.directory = CountryDirectory(
            country_source
            or RestCountriesSource(
                url=self.settings.pixelpilot_countries_url,
                timeout=self.settings.pixelpilot_countries_timeout,
            )
        )
        self.auth = AuthEngine(
            self.storage,
            self.scheduler,
            directory=self.directory,
            otp_send_delay=self.settings.pixelpilot_otp_send_delay,
            otp_resend_delay=self.settings.pixelpilot_otp_resend_delay,
            resend_cooldown=self.settings.pixelpilot_resend_cooldown,
        )
        self.chat = ChatStore(self.storage)
        self.exchange = MessageExchange(
            self.chat,
            self.scheduler,
            reply_delay_range=self.settings.reply_delay_range,
            assistant_name=self.settings.pixelpilot_assistant_name,
            rng=rng,
        )

        # Callbacks for UI updates
        self.on_chatroom_results: Callable[[list[Chatroom]], None] | None = None
        self.on_country_results: Callable[[list[Country]], None] | None = None
        self.chatroom_results: list[Chatroom] = []
        self.country_results: list[Country] = []

        self._chatroom_search = debounce(
            self._apply_chatroom_search, self.settings.pixelpilot_search_debounce, self.scheduler
        )
        self._country_search = throttle(
            self._apply_country_search,
            self.settings.pixelpilot_country_search_throttle,
            self.scheduler,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Rehydrate the auth session and the chat collection."""
        self.auth.rehydrate()
        self.chat.rehydrate()
        self.chatroom_results = list(self.chat.chatrooms)

    def load_countries(self) -> bool:
        """Load the country directory, degrading quietly on failure.

        Returns:
            True when the directory holds entries afterwards.
        """
        try:
            self.directory.load()
        except DirectoryLoadError as e:
            logger.warning(f"Country directory unavailable: {e}")
            return False
        self.country_results = list(self.directory.countries)
        return not self.directory.is_empty

    def dispose(self) -> None:
        """Cancel every pending timer owned by the client."""
        self._chatroom_search.close()
        self._country_search.close()
        self.exchange.dispose()
        self.auth.dispose()
        logger.debug("Client disposed")

    def __enter__(self) -> PixelPilot:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    # =========================================================================
    # CHAT
    # =========================================================================

    def start_chat(self, content: str, image: str | None = None) -> tuple[Chatroom, Message]:
        """Open a new chatroom and send its first message.

        The chatroom is titled ``chatroom-<n>`` after the current count.
        """
        if not content.strip() and not image:
            raise ValidationError.single("content", "Message cannot be empty.")

        room = self.chat.create_chatroom(self.chat.next_default_title())
        message = self.exchange.send(room.id, content, image)
        return self.chat.get_chatroom(room.id) or room, message

    def send_message(self, chatroom_id: str, content: str, image: str | None = None) -> Message:
        return self.exchange.send(chatroom_id, content, image)

    def delete_chatroom(self, chatroom_id: str) -> None:
        """Delete a chatroom and abandon replies still owed to it."""
        self.chat.delete_chatroom(chatroom_id)
        self.exchange.cancel(chatroom_id)

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search_chatrooms(self, term: str) -> None:
        """Filter chatrooms by title once typing pauses."""
        self._chatroom_search(term)

    def search_countries(self, term: str) -> None:
        """Filter the country selector, at most once per throttle window."""
        self._country_search(term)

    def _apply_chatroom_search(self, term: str) -> None:
        self.chatroom_results = self.chat.search_chatrooms(term)
        if self.on_chatroom_results:
            self.on_chatroom_results(self.chatroom_results)

    def _apply_country_search(self, term: str) -> None:
        self.country_results = self.directory.search(term)
        if self.on_country_results:
            self.on_country_results(self.country_results)
