"""
Authentication for Pixel Pilot.

Phone/OTP state machine and the country dial-code directory it reads.
"""

from pixelpilot.auth.countries import (
    CountryDirectory,
    CountrySource,
    RestCountriesSource,
    StaticCountrySource,
    build_directory,
)
from pixelpilot.auth.engine import AUTH_STORAGE_KEY, AuthEngine, validate_phone_form
from pixelpilot.auth.models import SENTINEL_OTP, AuthStep, Country, PhoneForm, User

__all__ = [
    "AUTH_STORAGE_KEY",
    "AuthEngine",
    "AuthStep",
    "Country",
    "CountryDirectory",
    "CountrySource",
    "PhoneForm",
    "RestCountriesSource",
    "SENTINEL_OTP",
    "StaticCountrySource",
    "User",
    "build_directory",
    "validate_phone_form",
]
