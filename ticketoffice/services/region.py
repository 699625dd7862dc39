from __future__ import annotations

from ticketoffice.models import Country, CountryConfig
from ticketoffice.services.base import READ_RETRIES, BaseService, seg

# Timezone fragment -> API country code (three letters).
_TIMEZONE_COUNTRIES = (
    (("Buenos_Aires", "Argentina"), "ARG"),
    (("Bogota", "Colombia"), "COL"),
)


def estimate_country_from_timezone(tz: str | None) -> str | None:
    """Best-effort country guess used to preselect the region picker."""
    if not tz:
        return None
    for fragments, code in _TIMEZONE_COUNTRIES:
        if any(f in tz for f in fragments):
            return code
    return None


class RegionService(BaseService):

    async def get_countries(self) -> list[Country]:
        raw = await self.http.get("/api/public/v1/form/country", retries=READ_RETRIES)
        return [Country.model_validate(c) for c in raw or []]

    async def get_country_config(self, country_code: str) -> CountryConfig:
        raw = await self.http.get(
            f"/api/public/v1/form/country/{seg(country_code)}/config",
            retries=READ_RETRIES,
        )
        return CountryConfig.model_validate(raw)
