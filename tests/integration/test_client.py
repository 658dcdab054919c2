"""
Integration tests for the PixelPilot client.

Exercises the auth engine, chat store and message exchange together on
one storage backend, the way a front-end drives them.
"""

import asyncio
import random
from unittest.mock import MagicMock

import pytest

from pixelpilot import PixelPilot
from pixelpilot.auth.countries import CountrySource, StaticCountrySource
from pixelpilot.auth.models import SENTINEL_OTP, AuthStep
from pixelpilot.chat.models import Sender
from pixelpilot.core.config import Settings
from pixelpilot.core.exceptions import DirectoryLoadError, ValidationError
from pixelpilot.core.scheduler import AsyncioScheduler, ManualScheduler
from pixelpilot.core.storage import FileStorage, MemoryStorage

# =============================================================================
# TEST FIXTURES
# =============================================================================


@pytest.fixture
def client(test_settings, storage, scheduler, country_records) -> PixelPilot:
    """Create a started client on a virtual clock."""
    client = PixelPilot(
        settings=test_settings,
        storage=storage,
        scheduler=scheduler,
        country_source=StaticCountrySource(country_records),
        rng=random.Random(3),
    )
    client.start()
    return client


def sign_in(client: PixelPilot, scheduler: ManualScheduler) -> None:
    client.load_countries()
    client.auth.request_otp("+91", "9876543210")
    scheduler.advance(2.0)
    client.auth.verify_otp(SENTINEL_OTP)


# =============================================================================
# TEST FULL FLOW
# =============================================================================


@pytest.mark.integration
class TestUserFlow:
    """Sign in, chat, sign out."""

    def test_sign_in_and_chat(self, client, scheduler) -> None:
        assert client.load_countries() is True
        assert client.auth.can_request_otp is True

        sign_in(client, scheduler)
        assert client.auth.step is AuthStep.AUTHENTICATED

        room, first = client.start_chat("hello")
        assert room.title == "chatroom-1"
        assert room.messages == (first,)
        assert client.chat.active_chatroom_id == room.id
        assert client.exchange.is_composing(room.id)

        scheduler.advance(4.0)

        messages = client.chat.get_chatroom(room.id).messages
        assert [m.sender for m in messages] == [Sender.USER, Sender.ASSISTANT]
        assert messages[1].content.startswith("Gemini's response to - ")

    def test_second_chat_gets_next_title(self, client) -> None:
        client.start_chat("one")
        room, _ = client.start_chat("two")

        assert room.title == "chatroom-2"

    def test_start_chat_with_empty_content_creates_nothing(self, client) -> None:
        with pytest.raises(ValidationError):
            client.start_chat("   ")

        assert client.chat.chatrooms == ()

    def test_logout_keeps_chat_history(self, client, scheduler, storage) -> None:
        sign_in(client, scheduler)
        room, _ = client.start_chat("hello")
        scheduler.advance(4.0)

        client.auth.logout()

        assert client.auth.is_authenticated is False
        assert len(client.chat.get_chatroom(room.id).messages) == 2

    def test_state_survives_restart(self, client, scheduler, storage, test_settings) -> None:
        sign_in(client, scheduler)
        room, _ = client.start_chat("hello")
        scheduler.advance(4.0)
        client.dispose()

        restarted = PixelPilot(
            settings=test_settings,
            storage=storage,
            scheduler=scheduler,
            country_source=StaticCountrySource([]),
        )
        restarted.start()

        assert restarted.auth.user.phone_number == "+919876543210"
        assert restarted.chat.active_chatroom_id == room.id
        assert len(restarted.chat.get_chatroom(room.id).messages) == 2
        assert [r.id for r in restarted.chatroom_results] == [room.id]

    def test_file_storage_round_trip(self, tmp_path, test_settings, scheduler, country_records):
        def make_client() -> PixelPilot:
            client = PixelPilot(
                settings=test_settings,
                storage=FileStorage(tmp_path),
                scheduler=scheduler,
                country_source=StaticCountrySource(country_records),
            )
            client.start()
            return client

        first = make_client()
        first.chat.create_chatroom("persisted")

        assert (tmp_path / "chat-storage.json").exists()
        assert [r.title for r in make_client().chat.chatrooms] == ["persisted"]


# =============================================================================
# TEST SEARCH / DIRECTORY
# =============================================================================


@pytest.mark.integration
class TestSearch:
    """Debounced chatroom search and throttled country search."""

    def test_chatroom_search_is_debounced(self, client, scheduler) -> None:
        for title in ("Trip planning", "Groceries", "trip photos"):
            client.chat.create_chatroom(title)
        on_results = MagicMock()
        client.on_chatroom_results = on_results

        client.search_chatrooms("t")
        client.search_chatrooms("tr")
        client.search_chatrooms("trip")
        scheduler.advance(0.2)
        on_results.assert_not_called()

        scheduler.advance(0.1)

        on_results.assert_called_once()
        assert [r.title for r in client.chatroom_results] == ["Trip planning", "trip photos"]

    def test_country_search_is_throttled(self, client, scheduler) -> None:
        client.load_countries()
        on_results = MagicMock()
        client.on_country_results = on_results

        client.search_countries("u")
        client.search_countries("un")
        client.search_countries("united")
        scheduler.advance(0.2)

        on_results.assert_called_once()
        assert [c.alpha3_code for c in client.country_results] == ["GBR", "USA"]

    def test_directory_failure_degrades(self, test_settings, storage, scheduler) -> None:
        source = MagicMock(spec=CountrySource)
        source.fetch.side_effect = DirectoryLoadError("offline")
        client = PixelPilot(
            settings=test_settings, storage=storage, scheduler=scheduler, country_source=source
        )
        client.start()

        assert client.load_countries() is False
        assert client.auth.can_request_otp is False
        assert client.country_results == []

        with pytest.raises(ValidationError) as exc_info:
            client.auth.request_otp("+91", "9876543210")
        scheduler.advance(2.0)

        assert set(exc_info.value.errors) == {"dial_code"}
        assert client.auth.step is AuthStep.UNAUTHENTICATED


# =============================================================================
# TEST TEARDOWN
# =============================================================================


@pytest.mark.integration
class TestTeardown:
    """Deleting chatrooms and disposing the client."""

    def test_delete_chatroom_cancels_replies(self, client, scheduler) -> None:
        room, _ = client.start_chat("hello")

        client.delete_chatroom(room.id)

        assert client.exchange.is_composing(room.id) is False
        assert scheduler.pending == 0

    def test_dispose_clears_timers(self, client, scheduler) -> None:
        client.load_countries()
        client.auth.request_otp("+91", "9876543210")
        client.start_chat("hello")
        client.search_chatrooms("hel")

        with client:
            pass

        assert scheduler.pending == 0


# =============================================================================
# TEST ASYNCIO SCHEDULER
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
async def test_flow_on_event_loop(country_records) -> None:
    """Test the real scheduler drives OTP dispatch and replies."""
    settings = Settings(
        pixelpilot_log_dir=None,
        pixelpilot_otp_send_delay=0.01,
        pixelpilot_reply_delay_min=0.01,
        pixelpilot_reply_delay_max=0.02,
    )
    client = PixelPilot(
        settings=settings,
        storage=MemoryStorage(),
        scheduler=AsyncioScheduler(),
        country_source=StaticCountrySource(country_records),
    )
    client.start()
    assert client.load_countries() is True

    client.auth.request_otp("+44", "7700900123")
    await asyncio.sleep(0.05)
    assert client.auth.step is AuthStep.AWAITING_OTP

    client.auth.verify_otp(SENTINEL_OTP)
    room, _ = client.start_chat("hello")
    await asyncio.sleep(0.1)

    assert len(client.chat.get_chatroom(room.id).messages) == 2
    client.dispose()
