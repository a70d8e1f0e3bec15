# services/cycle.py
"""Invoice cycle arithmetic.

A card closes its invoice on ``closing_day`` and charges it on ``due_day``.
Purchases made after the closing day fall on the next month's invoice.
Days past the end of a month clamp to its last day, so a card closing on
the 31st closes on Feb 28 (or 29) in February.
"""

import calendar
from datetime import date
from typing import NamedTuple

from ..exceptions import ValidationError


class InvoiceCycle(NamedTuple):
    month: int
    year: int


class InvoiceDates(NamedTuple):
    closing_date: date
    due_date: date


def validate_day(day: int, field: str = "day") -> int:
    """Reject day-of-month values outside 1..31."""
    if day is None or not 1 <= int(day) <= 31:
        raise ValidationError(f"{field} must be between 1 and 31")
    return int(day)


def validate_month(month: int) -> int:
    if month is None or not 1 <= int(month) <= 12:
        raise ValidationError("month must be between 1 and 12")
    return int(month)


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, moving ``day`` back to the month's last day when it overflows."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def next_month(month: int, year: int) -> InvoiceCycle:
    if month == 12:
        return InvoiceCycle(1, year + 1)
    return InvoiceCycle(month + 1, year)


def previous_month(month: int, year: int) -> InvoiceCycle:
    if month == 1:
        return InvoiceCycle(12, year - 1)
    return InvoiceCycle(month - 1, year)


def resolve_invoice_cycle(card, target_date: date) -> InvoiceCycle:
    """Return the (month, year) of the invoice that is open on ``target_date``.

    On or before the closing day the invoice of the date's own month is
    open; afterwards the next month's.
    """
    closing_day = validate_day(card.closing_day, "closing_day")
    if target_date.day <= closing_day:
        return InvoiceCycle(target_date.month, target_date.year)
    return next_month(target_date.month, target_date.year)


def due_month(card, reference_month: int, reference_year: int) -> InvoiceCycle:
    """Month in which the invoice for the reference month is due.

    When the card is due before it closes (closes on the 28th, due on the
    5th) payment falls in the following month. Equal days stay in the
    reference month.
    """
    if card.due_day < card.closing_day:
        return next_month(reference_month, reference_year)
    return InvoiceCycle(reference_month, reference_year)


def compute_invoice_dates(card, reference_month: int, reference_year: int) -> InvoiceDates:
    """Closing and due dates of the invoice for ``reference_month``/``reference_year``."""
    closing_day = validate_day(card.closing_day, "closing_day")
    due_day = validate_day(card.due_day, "due_day")
    validate_month(reference_month)

    closing_date = clamp_day(reference_year, reference_month, closing_day)
    month, year = due_month(card, reference_month, reference_year)
    due_date = clamp_day(year, month, due_day)
    return InvoiceDates(closing_date, due_date)
