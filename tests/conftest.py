"""Pytest configuration and shared fixtures."""

import os
import random
from collections.abc import Generator

import pytest

# Set test environment
os.environ.setdefault("PIXELPILOT_DEBUG", "true")
os.environ.setdefault("PIXELPILOT_LOG_LEVEL", "DEBUG")


@pytest.fixture
def mock_settings() -> Generator:
    """Clear the settings cache around a test."""
    from pixelpilot.core.config import clear_settings_cache

    clear_settings_cache()

    yield

    clear_settings_cache()


@pytest.fixture
def scheduler():
    """Provide a virtual-clock scheduler."""
    from pixelpilot.core.scheduler import ManualScheduler

    return ManualScheduler()


@pytest.fixture
def storage():
    """Provide in-memory storage."""
    from pixelpilot.core.storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def country_records() -> list[dict]:
    """Provide raw country records shaped like the restcountries API."""
    return [
        {
            "name": {"common": "India"},
            "cca3": "IND",
            "idd": {"root": "+9", "suffixes": ["1"]},
            "flags": {"png": "https://flagcdn.com/w320/in.png", "svg": "https://flagcdn.com/in.svg"},
        },
        {
            "name": {"common": "United Kingdom"},
            "cca3": "GBR",
            "idd": {"root": "+4", "suffixes": ["4"]},
            "flags": {"png": "https://flagcdn.com/w320/gb.png", "svg": "https://flagcdn.com/gb.svg"},
        },
        {
            "name": {"common": "Jersey"},
            "cca3": "JEY",
            "idd": {"root": "+4", "suffixes": ["4"]},  # same dial code as GBR
            "flags": {"png": "https://flagcdn.com/w320/je.png", "svg": ""},
        },
        {
            "name": {"common": "Bouvet Island"},
            "cca3": "BVT",
            "idd": {},
            "flags": {"png": "https://flagcdn.com/w320/bv.png", "svg": "https://flagcdn.com/bv.svg"},
        },
        {
            "name": {"common": "United States"},
            "cca3": "USA",
            "idd": {"root": "+1", "suffixes": ["201", "202", "203"]},
            "flags": {"png": "https://flagcdn.com/w320/us.png", "svg": "https://flagcdn.com/us.svg"},
        },
        {
            "name": {"common": "Russia"},
            "cca3": "RUS",
            "idd": {"root": "+7", "suffixes": []},
            "flags": {"png": "https://flagcdn.com/w320/ru.png"},
        },
    ]


@pytest.fixture
def country_source(country_records):
    """Provide a static country source."""
    from pixelpilot.auth.countries import StaticCountrySource

    return StaticCountrySource(country_records)


@pytest.fixture
def directory(country_source):
    """Provide a loaded country directory."""
    from pixelpilot.auth.countries import CountryDirectory

    directory = CountryDirectory(country_source)
    directory.load()
    return directory


@pytest.fixture
def auth_engine(storage, scheduler):
    """Provide an authentication engine with default timings."""
    from pixelpilot.auth.engine import AuthEngine

    engine = AuthEngine(storage, scheduler)
    engine.rehydrate()
    return engine


@pytest.fixture
def chat_store(storage):
    """Provide an empty chat store."""
    from pixelpilot.chat.store import ChatStore

    return ChatStore(storage)


@pytest.fixture
def exchange(chat_store, scheduler):
    """Provide a message exchange with a seeded random source."""
    from pixelpilot.chat.exchange import MessageExchange

    return MessageExchange(chat_store, scheduler, rng=random.Random(7))


@pytest.fixture
def test_settings():
    """Provide settings with the default timings and no log files."""
    from pixelpilot.core.config import Settings

    return Settings(pixelpilot_log_dir=None)


# Markers
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
