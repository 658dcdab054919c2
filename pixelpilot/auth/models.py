"""Authentication and country directory data types."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Mock backend: the only OTP ever issued.
SENTINEL_OTP = "123456"


class AuthStep(str, Enum):
    """States of the phone/OTP login flow."""

    UNAUTHENTICATED = "unauthenticated"
    AWAITING_OTP = "awaiting_otp"
    AUTHENTICATED = "authenticated"


class User(BaseModel):
    """The signed-in user."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    phone_number: str = Field(min_length=1)


class PersistedAuthState(BaseModel):
    """Blob written under the ``auth-storage`` key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_authenticated: bool = False
    user: User | None = None


class PhoneForm(BaseModel):
    """Values entered on the collect-phone step."""

    model_config = ConfigDict(frozen=True)

    dial_code: str = ""
    phone_digits: str = ""

    @property
    def full_number(self) -> str:
        return f"{self.dial_code}{self.phone_digits}"


# =============================================================================
# COUNTRY REFERENCE DATA
# =============================================================================


class CountryName(BaseModel):
    model_config = ConfigDict(extra="ignore")

    common: str


class CountryIdd(BaseModel):
    model_config = ConfigDict(extra="ignore")

    root: str | None = None
    suffixes: list[str] | None = None


class CountryFlags(BaseModel):
    model_config = ConfigDict(extra="ignore")

    png: str = ""
    svg: str = ""
    alt: str | None = None


class CountryRecord(BaseModel):
    """One raw record from the country reference source."""

    model_config = ConfigDict(extra="ignore")

    name: CountryName
    cca3: str
    idd: CountryIdd = Field(default_factory=CountryIdd)
    flags: CountryFlags = Field(default_factory=CountryFlags)

    @property
    def dial_code(self) -> str | None:
        """Root plus first suffix, or None when the record has no root."""
        if not self.idd.root:
            return None
        first_suffix = self.idd.suffixes[0] if self.idd.suffixes else ""
        return f"{self.idd.root}{first_suffix}"


class Country(BaseModel):
    """A directory entry, keyed by its unique dial code."""

    model_config = ConfigDict(frozen=True)

    common_name: str
    alpha3_code: str
    dial_code: str
    flag_asset_ref: str = ""

    @classmethod
    def from_record(cls, record: CountryRecord) -> "Country":
        dial_code = record.dial_code
        if dial_code is None:
            raise ValueError(f"{record.cca3} has no dial code root")
        return cls(
            common_name=record.name.common,
            alpha3_code=record.cca3,
            dial_code=dial_code,
            flag_asset_ref=record.flags.svg or record.flags.png,
        )
