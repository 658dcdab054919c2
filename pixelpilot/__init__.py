"""
Pixel Pilot - conversational chat client engine.

Phone/OTP authentication in front of a multi-session chat, with every
backend behavior simulated locally.
"""

__version__ = "0.1.0"
__author__ = "Pixel Pilot Team"

from pixelpilot.core.client import PixelPilot

__all__ = ["PixelPilot", "__version__"]
