"""Sales listing, CSV export and ticket validation."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from ticketoffice.http import HttpError, user_message
from ticketoffice.models import (
    SaleRecord,
    SalesFilters,
    ValidationResult,
    end_of_day,
    parse_iso,
    start_of_day,
)
from ticketoffice.services.base import READ_RETRIES, WRITE_RETRIES, BaseService, seg

log = logging.getLogger(__name__)

CSV_HEADERS = (
    "Fecha",
    "Evento",
    "Vendedor",
    "Email comprador",
    "Cantidad",
    "Precio unitario",
    "Total",
    "Cupón",
    "Código vendedor",
    "Estado pago",
    "Orden",
)

HISTORY_LIMIT = 50


def filter_sales(rows: Sequence[SaleRecord], filters: SalesFilters) -> list[SaleRecord]:
    """Date range (whole UTC days), event, seller and free-text filters."""
    out = list(rows)
    if filters.date_from:
        lo = start_of_day(filters.date_from)
        out = [r for r in out if (t := parse_iso(r.date)) is not None and t >= lo]
    if filters.date_to:
        # Inclusive up to 23:59:59 of the last day.
        hi = end_of_day(filters.date_to).replace(microsecond=0)
        out = [r for r in out if (t := parse_iso(r.date)) is not None and t <= hi]
    if filters.event_id:
        out = [r for r in out if r.event_id == filters.event_id]
    if filters.seller_id:
        out = [r for r in out if r.seller_id == filters.seller_id]
    if filters.query:
        q = filters.query.lower()
        out = [
            r for r in out
            if q in r.event_name.lower()
            or q in r.buyer_email.lower()
            or q in (r.coupon_code or "").lower()
            or q in (r.vendor_code or "").lower()
            or q in r.order_id.lower()
        ]
    return out


def _csv_date(value: str) -> str:
    dt = parse_iso(value)
    if dt is None:
        return value
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_csv(rows: Sequence[SaleRecord]) -> str:
    """Render sales as CSV with every cell quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in rows:
        writer.writerow([
            _csv_date(r.date),
            r.event_name,
            r.seller_name,
            r.buyer_email,
            r.quantity,
            f"{r.unit_price:.2f}",
            f"{r.total:.2f}",
            r.coupon_code or "",
            r.vendor_code or "",
            r.payment_status.value,
            r.order_id,
        ])
    return buf.getvalue().rstrip("\n")


class SalesService(BaseService):

    async def list(self, filters: SalesFilters | None = None) -> list[SaleRecord]:
        filters = filters or SalesFilters()
        raw = await self.http.get(
            "/api/v1/sales", params=filters.to_api(), retries=READ_RETRIES
        )
        rows = [SaleRecord.model_validate(r) for r in raw or []]
        # Re-apply locally in case the API ignores some filters.
        return filter_sales(rows, filters)

    async def get_sale(self, event_id: str, sale_id: str) -> SaleRecord:
        raw = await self.http.get(
            f"/api/sales/{seg(event_id)}/{seg(sale_id)}", retries=READ_RETRIES
        )
        return SaleRecord.model_validate(raw)

    async def get_event_sales(self, event_id: str) -> list[SaleRecord]:
        raw = await self.http.get(f"/api/sales/event/{seg(event_id)}", retries=READ_RETRIES)
        items = raw.get("sales", []) if isinstance(raw, dict) else raw or []
        return [SaleRecord.model_validate(r) for r in items]

    async def validate(self, session_id: str) -> None:
        """Mark the tickets of a checkout session as used at the door."""
        await self.http.post(
            f"/api/public/v1/checkout/session/{seg(session_id)}/validate",
            retries=WRITE_RETRIES,
        )


def _already_validated(details: Any) -> bool:
    if not isinstance(details, dict):
        return False
    return details.get("code") == "already_validated" or "already" in str(
        details.get("message", "")
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketValidator:
    """Door-side validation with duplicate protection and a short history."""

    def __init__(
        self, sales: SalesService, *, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._sales = sales
        self._clock = clock
        self._pending: set[str] = set()
        self.last_result: ValidationResult | None = None
        self.history: list[ValidationResult] = []

    @property
    def validating(self) -> bool:
        return bool(self._pending)

    async def validate(self, session_id: str) -> ValidationResult:
        code = session_id.strip()
        if not code:
            result = ValidationResult(
                session_id="",
                success=False,
                message="Please enter a valid ticket code.",
                validated_at=self._clock(),
            )
            self.last_result = result
            return result

        if code in self._pending:
            log.warning("Duplicate validation ignored session=%s", code)
            return ValidationResult(
                session_id=code,
                success=False,
                message="This ticket is already being validated.",
                validated_at=self._clock(),
            )

        self._pending.add(code)
        try:
            await self._sales.validate(code)
            result = ValidationResult(
                session_id=code,
                success=True,
                message="Ticket validated.",
                validated_at=self._clock(),
            )
            log.info("Ticket validated session=%s", code)
        except HttpError as exc:
            log.error("Ticket validation failed session=%s status=%d", code, exc.status)
            message = user_message(exc)
            if exc.is_not_found:
                message = "Ticket not found. Check the code and try again."
            elif exc.status == 400 and _already_validated(exc.details):
                message = "This ticket was already validated."
            elif exc.is_forbidden:
                message = "You do not have permission to validate this ticket."
            result = ValidationResult(
                session_id=code,
                success=False,
                message=message,
                validated_at=self._clock(),
            )
        finally:
            self._pending.discard(code)

        self.last_result = result
        self.history = [result, *self.history][:HISTORY_LIMIT]
        return result

    def clear_result(self) -> None:
        self.last_result = None

    def clear_history(self) -> None:
        self.history = []
        self.last_result = None
