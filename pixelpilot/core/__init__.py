"""Core module - configuration, errors, scheduling, storage and the client facade."""

from pixelpilot.core.client import PixelPilot
from pixelpilot.core.config import Settings, get_settings
from pixelpilot.core.exceptions import (
    CooldownError,
    DeliveryError,
    DirectoryLoadError,
    InvalidOtpError,
    InvalidStateError,
    NotFoundError,
    PixelPilotError,
    ValidationError,
)
from pixelpilot.core.scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TimerHandle
from pixelpilot.core.storage import FileStorage, MemoryStorage, StorageBackend

__all__ = [
    "AsyncioScheduler",
    "CooldownError",
    "DeliveryError",
    "DirectoryLoadError",
    "FileStorage",
    "InvalidOtpError",
    "InvalidStateError",
    "ManualScheduler",
    "MemoryStorage",
    "NotFoundError",
    "PixelPilot",
    "PixelPilotError",
    "Scheduler",
    "Settings",
    "StorageBackend",
    "TimerHandle",
    "ValidationError",
    "get_settings",
]
