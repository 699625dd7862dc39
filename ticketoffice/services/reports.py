"""Dashboard totals and the paginated sales report."""

from __future__ import annotations

from ticketoffice.models import ReportFilters, ReportPage, StatsSummary
from ticketoffice.services.base import READ_RETRIES, BaseService, seg


class StatsService(BaseService):

    async def seller_summary(self, seller_id: str) -> StatsSummary:
        raw = await self.http.get(
            f"/api/private/v1/stats/seller/{seg(seller_id)}", retries=READ_RETRIES
        )
        return StatsSummary.model_validate(raw)

    async def global_summary(self) -> StatsSummary:
        raw = await self.http.get("/api/private/v1/stats/global", retries=READ_RETRIES)
        return StatsSummary.model_validate(raw)


class ReportService(BaseService):

    async def list_sales(self, filters: ReportFilters | None = None) -> ReportPage:
        """One page of the sales report; page numbers start at 1."""
        filters = filters or ReportFilters()
        raw = await self.http.get(
            "/api/private/v1/reports/sales", params=filters.to_api(), retries=READ_RETRIES
        )
        return ReportPage.model_validate(raw)
