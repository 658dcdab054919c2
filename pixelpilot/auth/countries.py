"""
Country directory cache.

Fetches the dial-code reference list once and keeps at most one entry per
dial code, first occurrence winning.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from pixelpilot.auth.models import Country, CountryRecord
from pixelpilot.core.config import RESTCOUNTRIES_URL
from pixelpilot.core.exceptions import DirectoryLoadError

RESTCOUNTRIES_FIELDS = "name,cca3,idd,flags"


class CountrySource(ABC):
    """Read-only provider of raw country records."""

    @abstractmethod
    def fetch(self) -> list[dict[str, Any]]:
        """Return raw country records in source order.

        Raises:
            DirectoryLoadError: If the records cannot be retrieved.
        """


class RestCountriesSource(CountrySource):
    """Fetch records from the restcountries.com v3.1 API."""

    def __init__(
        self,
        url: str = RESTCOUNTRIES_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def fetch(self) -> list[dict[str, Any]]:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.url, params={"fields": RESTCOUNTRIES_FIELDS})
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise DirectoryLoadError(f"Country fetch failed: {exc}") from exc
        except ValueError as exc:
            raise DirectoryLoadError(f"Country response is not JSON: {exc}") from exc

        if not isinstance(data, list):
            raise DirectoryLoadError("Country response is not a list")
        return data


class StaticCountrySource(CountrySource):
    """Serve a fixed list of records (offline use and tests)."""

    def __init__(self, records: Iterable[dict[str, Any]]) -> None:
        self._records = list(records)

    def fetch(self) -> list[dict[str, Any]]:
        return list(self._records)


def build_directory(records: Iterable[dict[str, Any]]) -> list[Country]:
    """Turn raw records into a dial-code-unique directory.

    Records are walked in order; those without a dial-code root, those
    repeating an already seen dial code, and malformed ones are dropped.

    Args:
        records: Raw records as returned by a CountrySource.

    Returns:
        Directory entries in source order.
    """
    seen: set[str] = set()
    countries: list[Country] = []

    for raw in records:
        try:
            record = CountryRecord.model_validate(raw)
        except PydanticValidationError as e:
            logger.debug(f"Skipping malformed country record: {e.error_count()} error(s)")
            continue

        dial_code = record.dial_code
        if dial_code is None or dial_code in seen:
            continue

        seen.add(dial_code)
        countries.append(Country.from_record(record))

    return countries


class CountryDirectory:
    """
    Cached, dial-code-unique country list.

    Usage:
        directory = CountryDirectory(RestCountriesSource())
        directory.load()
        directory.search("ind")
    """

    def __init__(self, source: CountrySource) -> None:
        self.source = source
        self._countries: list[Country] = []
        self._by_dial_code: dict[str, Country] = {}

    @property
    def countries(self) -> Sequence[Country]:
        return tuple(self._countries)

    @property
    def is_empty(self) -> bool:
        return not self._countries

    def __len__(self) -> int:
        return len(self._countries)

    def load(self) -> None:
        """Fetch the reference list unless it is already cached.

        Raises:
            DirectoryLoadError: If the fetch fails. The cache keeps its
                previous contents.
        """
        if self._countries:
            return

        try:
            records = self.source.fetch()
        except DirectoryLoadError:
            raise
        except Exception as e:
            raise DirectoryLoadError(f"Country fetch failed: {e}") from e

        countries = build_directory(records)
        self._countries = countries
        self._by_dial_code = {country.dial_code: country for country in countries}
        logger.info(f"Loaded {len(countries)} countries ({len(records)} records received)")

    def invalidate(self) -> None:
        """Forget cached entries so the next load fetches again."""
        self._countries = []
        self._by_dial_code = {}

    def get(self, dial_code: str) -> Country | None:
        return self._by_dial_code.get(dial_code)

    def search(self, term: str) -> list[Country]:
        """Case-insensitive match on name, alpha-3 code or dial code."""
        needle = term.strip().lower()
        if not needle:
            return list(self._countries)
        return [
            country
            for country in self._countries
            if needle in country.common_name.lower()
            or needle in country.alpha3_code.lower()
            or needle in country.dial_code
        ]
