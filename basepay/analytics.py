"""Paid-invoice analytics for the dashboard chart and counters.

Everything here is pure: the same invoices, window and ``now`` always give
the same bars.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable

from .evm.utils import to_decimal
from .models import AnalyticsBar, InvoiceRecord, InvoiceSummary

DecimalsLookup = Callable[[str], int]

_WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class AnalyticsWindow(str, Enum):
    THIS_WEEK = "This Week"
    LAST_WEEK = "Last Week"
    LAST_30_DAYS = "Last 30 Days"
    LAST_12_MONTHS = "Last 12 Months"


def _as_utc(now: dt.datetime | float) -> dt.datetime:
    if isinstance(now, dt.datetime):
        if now.tzinfo is None:
            return now.replace(tzinfo=dt.timezone.utc)
        return now.astimezone(dt.timezone.utc)
    return dt.datetime.fromtimestamp(now, tz=dt.timezone.utc)


def window_dates(window: AnalyticsWindow, now: dt.datetime | float) -> list[dt.date]:
    """Bucket dates for ``window`` relative to ``now`` (UTC).

    Weeks run Monday to Sunday; monthly buckets are the first of each month.
    """
    today = _as_utc(now).date()
    if window in (AnalyticsWindow.THIS_WEEK, AnalyticsWindow.LAST_WEEK):
        monday = today - dt.timedelta(days=today.weekday())
        if window is AnalyticsWindow.LAST_WEEK:
            monday -= dt.timedelta(days=7)
        return [monday + dt.timedelta(days=i) for i in range(7)]
    if window is AnalyticsWindow.LAST_30_DAYS:
        return [today - dt.timedelta(days=29 - i) for i in range(30)]
    if window is AnalyticsWindow.LAST_12_MONTHS:
        dates = []
        for i in range(12):
            offset = today.month - 1 - (11 - i)
            year, month = today.year + offset // 12, offset % 12 + 1
            dates.append(dt.date(year, month, 1))
        return dates
    raise ValueError(f"Unknown analytics window: {window}")


def _label(window: AnalyticsWindow, date: dt.date) -> str:
    if window is AnalyticsWindow.LAST_30_DAYS:
        return str(date.day)
    if window is AnalyticsWindow.LAST_12_MONTHS:
        return _MONTH_LABELS[date.month - 1]
    return _WEEKDAY_LABELS[date.weekday()]


def aggregate(
    invoices: Iterable[InvoiceRecord],
    window: AnalyticsWindow,
    now: dt.datetime | float,
    decimals_for: DecimalsLookup,
) -> list[AnalyticsBar]:
    """Sum paid invoice amounts per bucket of ``window``.

    Only paid invoices with a non-zero ``paid_at`` count. Daily buckets match
    on UTC year, month and day; monthly buckets on UTC year and month. Each
    amount is scaled by the decimals of its own token.

    Args:
        invoices: Invoices to aggregate.
        window: Time window.
        now: Reference time (datetime or unix seconds).
        decimals_for: Token address -> decimals.

    Returns:
        One bar per bucket, oldest first.
    """
    monthly = window is AnalyticsWindow.LAST_12_MONTHS
    totals: dict[tuple[int, ...], Decimal] = {}
    for invoice in invoices:
        if not invoice.is_paid or invoice.paid_at <= 0:
            continue
        paid = dt.datetime.fromtimestamp(invoice.paid_at, tz=dt.timezone.utc).date()
        key = (paid.year, paid.month) if monthly else (paid.year, paid.month, paid.day)
        totals[key] = totals.get(key, Decimal(0)) + to_decimal(invoice.amount, decimals_for(invoice.token))

    bars = []
    for date in window_dates(window, now):
        key = (date.year, date.month) if monthly else (date.year, date.month, date.day)
        bars.append(AnalyticsBar(label=_label(window, date), value=totals.get(key, Decimal(0)), date=date))
    return bars


def summarize(invoices: Iterable[InvoiceRecord]) -> InvoiceSummary:
    """Total, active (unpaid) and paid invoice counts."""
    records = list(invoices)
    paid = sum(1 for i in records if i.is_paid)
    return InvoiceSummary(total=len(records), active=len(records) - paid, paid=paid)
