"""Persisted regional configuration and regional display formatting.

The region never restricts which events a user can see or buy; it only
affects how prices and dates are shown and which document types forms offer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from ticketoffice.models import CountryConfig, DocumentType, SavedRegion, parse_iso
from ticketoffice.storage import LocalStorage

log = logging.getLogger(__name__)

COUNTRY_CODE = "region_country_code"
COUNTRY_CONFIG = "region_country_config"
SELECTED_CITY = "region_selected_city"
SELECTED_CURRENCY = "region_selected_currency"
CONFIG_TIMESTAMP = "region_config_timestamp"

_ALL_KEYS = (COUNTRY_CODE, COUNTRY_CONFIG, SELECTED_CITY, SELECTED_CURRENCY, CONFIG_TIMESTAMP)

_MONTHS_ES = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RegionStore:
    """Save and reload the user's region choice, expiring after *max_age*."""

    def __init__(
        self,
        storage: LocalStorage,
        *,
        max_age: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._max_age = max_age
        self._clock = clock

    async def save(
        self,
        country_code: str,
        config: CountryConfig,
        city_code: str | None = None,
        currency_code: str | None = None,
    ) -> SavedRegion:
        # Fall back to the first currency the country offers.
        if not currency_code and config.available_currencies:
            currency_code = config.available_currencies[0].code

        now = self._clock()
        await self._storage.set_item(COUNTRY_CODE, country_code)
        await self._storage.set_json(COUNTRY_CONFIG, config.to_api())
        await self._storage.set_item(CONFIG_TIMESTAMP, now.isoformat())
        if city_code:
            await self._storage.set_item(SELECTED_CITY, city_code)
        if currency_code:
            await self._storage.set_item(SELECTED_CURRENCY, currency_code)

        log.info(
            "Region saved country=%s city=%s currency=%s",
            country_code, city_code, currency_code,
        )
        return SavedRegion(
            country_code=country_code,
            config=config,
            city_code=city_code,
            currency_code=currency_code,
            saved_at=now,
        )

    async def load(self) -> SavedRegion | None:
        """Return the saved region, or ``None`` when nothing usable is stored."""
        country_code = await self._storage.get_item(COUNTRY_CODE)
        raw_config = await self._storage.get_json(COUNTRY_CONFIG)
        saved_at = parse_iso(await self._storage.get_item(CONFIG_TIMESTAMP))
        if not country_code or raw_config is None or saved_at is None:
            return None

        try:
            config = CountryConfig.model_validate(raw_config)
        except ValidationError:
            log.warning("Stored region config is invalid; ignoring it")
            return None

        return SavedRegion(
            country_code=country_code,
            config=config,
            city_code=await self._storage.get_item(SELECTED_CITY),
            currency_code=await self._storage.get_item(SELECTED_CURRENCY),
            saved_at=saved_at,
            is_expired=self._clock() - saved_at > self._max_age,
        )

    async def clear(self) -> None:
        for key in _ALL_KEYS:
            await self._storage.remove_item(key)
        log.info("Region cleared")


def format_number_es(amount: float) -> str:
    """``1234567.5`` -> ``"1.234.567,5"``: up to two decimals, dot grouping."""
    text = f"{amount:,.2f}".rstrip("0").rstrip(".")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


class RegionalFormat:
    """Format prices and dates for a region; works without a region too."""

    def __init__(
        self,
        config: CountryConfig | None = None,
        currency_code: str | None = None,
        tz: str = "UTC",
    ) -> None:
        self.config = config
        self.currency_code = currency_code
        try:
            self.tz = ZoneInfo(tz)
        except ZoneInfoNotFoundError:
            self.tz = ZoneInfo("UTC")

    @classmethod
    def from_saved(cls, saved: SavedRegion | None, tz: str = "UTC") -> RegionalFormat:
        if saved is None:
            return cls(tz=tz)
        return cls(saved.config, saved.currency_code, tz)

    def _symbol_for(self, code: str) -> str:
        if self.config:
            for currency in self.config.available_currencies:
                if currency.code == code:
                    return currency.symbol
        return code

    def currency_symbol(self) -> str:
        if not self.config or not self.currency_code:
            return "$"
        return self._symbol_for(self.currency_code)

    def format_price(self, amount: float, currency: str | None = None) -> str:
        code = currency or self.currency_code or "USD"
        return f"{self._symbol_for(code)} {format_number_es(amount)}"

    def _localize(self, value: str | datetime) -> datetime:
        dt = parse_iso(value) if isinstance(value, str) else value
        if dt is None:
            raise ValueError(f"Invalid date: {value!r}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(self.tz)

    def format_date(self, value: str | datetime) -> str:
        dt = self._localize(value)
        return f"{dt.day} de {_MONTHS_ES[dt.month - 1]} de {dt.year}"

    def format_time(self, value: str | datetime) -> str:
        return self._localize(value).strftime("%H:%M")

    def format_datetime(self, value: str | datetime) -> str:
        return f"{self.format_date(value)}, {self.format_time(value)}"

    def document_types(self) -> list[DocumentType]:
        return list(self.config.document_type) if self.config else []
