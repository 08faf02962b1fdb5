"""
Trade selection filters shared by deduplication and bulk deletion.

All date bounds are UTC and inclusive. A month filter wins over an explicit
date range.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, time

from django.db.models import QuerySet

from services.core.exceptions import InvalidTradeFilterError
from trading.models import Trade

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
END_OF_DAY = time(23, 59, 59, 999999)


def month_range(month: str) -> tuple[datetime, datetime]:
    """Return the first and last instants of a ``YYYY-MM`` month in UTC."""
    match = MONTH_PATTERN.match(month or "")
    if not match:
        raise InvalidTradeFilterError("month", month, "expected YYYY-MM")
    year, month_number = int(match.group(1)), int(match.group(2))
    if not 1 <= month_number <= 12:
        raise InvalidTradeFilterError("month", month, "month must be 01-12")

    last_day = calendar.monthrange(year, month_number)[1]
    start = datetime(year, month_number, 1, tzinfo=UTC)
    end = datetime.combine(date(year, month_number, last_day), END_OF_DAY, tzinfo=UTC)
    return start, end


def parse_iso_date(value: str, field_name: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise InvalidTradeFilterError(field_name, value, "expected YYYY-MM-DD") from e


def _clean_code(value) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip().upper()
    return cleaned or None


@dataclass
class TradeFilter:
    """Optional restrictions on which of a user's trades an operation touches."""

    month: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    market: str | None = None
    symbol: str | None = None

    @classmethod
    def from_request_data(cls, data: dict) -> "TradeFilter":
        """Build a filter from a JSON body using ``month``/``startDate``/``endDate``/``market``/``symbol``."""
        month_raw = data.get("month")
        if month_raw is not None and not isinstance(month_raw, str):
            raise InvalidTradeFilterError("month", month_raw, "expected YYYY-MM")
        month = (month_raw or "").strip() or None
        if month:
            month_range(month)

        start_raw = data.get("startDate") or None
        end_raw = data.get("endDate") or None
        start_date = parse_iso_date(start_raw, "startDate") if start_raw else None
        end_date = parse_iso_date(end_raw, "endDate") if end_raw else None

        if not month:
            if bool(start_date) != bool(end_date):
                missing = "endDate" if start_date else "startDate"
                raise InvalidTradeFilterError(missing, None, "startDate and endDate go together")
            if start_date and end_date and start_date > end_date:
                raise InvalidTradeFilterError("startDate", start_raw, "must not be after endDate")

        return cls(
            month=month,
            start_date=start_date,
            end_date=end_date,
            market=_clean_code(data.get("market")),
            symbol=_clean_code(data.get("symbol")),
        )

    def date_bounds(self) -> tuple[datetime, datetime] | None:
        if self.month:
            return month_range(self.month)
        if self.start_date and self.end_date:
            return (
                datetime.combine(self.start_date, time.min, tzinfo=UTC),
                datetime.combine(self.end_date, END_OF_DAY, tzinfo=UTC),
            )
        return None

    @property
    def is_empty(self) -> bool:
        return self.date_bounds() is None and not self.market and not self.symbol

    def apply(self, queryset: QuerySet) -> QuerySet:
        bounds = self.date_bounds()
        if bounds:
            queryset = queryset.filter(executed_at__gte=bounds[0], executed_at__lte=bounds[1])
        if self.market:
            queryset = queryset.filter(market=self.market)
        if self.symbol:
            queryset = queryset.filter(symbol=self.symbol)
        return queryset

    def to_request_data(self) -> dict:
        """Inverse of ``from_request_data``, used to hand the filter to a task."""
        return {
            "month": self.month,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "market": self.market,
            "symbol": self.symbol,
        }

    def describe(self) -> str:
        parts = []
        bounds = self.date_bounds()
        if bounds:
            parts.append(f"{bounds[0].isoformat()}..{bounds[1].isoformat()}")
        if self.market:
            parts.append(f"market={self.market}")
        if self.symbol:
            parts.append(f"symbol={self.symbol}")
        return ", ".join(parts) or "no filters"


def user_trades(account_ids, trade_filter: TradeFilter | None = None) -> QuerySet:
    """Trades of the given accounts narrowed by ``trade_filter``."""
    queryset = Trade.objects.filter(account_id__in=list(account_ids))
    if trade_filter is not None:
        queryset = trade_filter.apply(queryset)
    return queryset
