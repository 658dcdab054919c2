"""
Timing utilities for Pixel Pilot.

Debounce and throttle wrappers that gate user-triggered operations.
"""

from pixelpilot.timing.rate_limit import Debounced, Throttled, debounce, throttle

__all__ = [
    "Debounced",
    "Throttled",
    "debounce",
    "throttle",
]
