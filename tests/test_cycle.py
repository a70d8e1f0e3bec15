from datetime import date
from types import SimpleNamespace

import pytest

from invoice_manager.exceptions import ValidationError
from invoice_manager.services.cycle import (
    clamp_day,
    compute_invoice_dates,
    next_month,
    previous_month,
    resolve_invoice_cycle,
)


def card(closing_day, due_day):
    return SimpleNamespace(closing_day=closing_day, due_day=due_day)


class TestClampDay:

    def test_leap_february(self):
        assert clamp_day(2024, 2, 31) == date(2024, 2, 29)

    def test_common_february(self):
        assert clamp_day(2023, 2, 31) == date(2023, 2, 28)

    def test_thirty_day_month(self):
        assert clamp_day(2025, 4, 31) == date(2025, 4, 30)

    def test_day_that_fits_is_kept(self):
        assert clamp_day(2025, 1, 15) == date(2025, 1, 15)


class TestMonthArithmetic:

    def test_next_month_wraps_year(self):
        assert next_month(12, 2024) == (1, 2025)

    def test_previous_month_wraps_year(self):
        assert previous_month(1, 2025) == (12, 2024)


class TestResolveInvoiceCycle:

    def test_before_closing_stays_in_month(self):
        assert resolve_invoice_cycle(card(15, 25), date(2025, 3, 10)) == (3, 2025)

    def test_closing_day_itself_stays_in_month(self):
        assert resolve_invoice_cycle(card(15, 25), date(2025, 3, 15)) == (3, 2025)

    def test_after_closing_moves_to_next_month(self):
        assert resolve_invoice_cycle(card(15, 25), date(2025, 3, 16)) == (4, 2025)

    def test_after_closing_in_december_wraps_year(self):
        assert resolve_invoice_cycle(card(15, 25), date(2024, 12, 20)) == (1, 2025)

    def test_closing_on_31st_covers_short_months(self):
        # Every day of February is on or before the 31st
        assert resolve_invoice_cycle(card(31, 10), date(2023, 2, 28)) == (2, 2023)

    def test_rejects_invalid_closing_day(self):
        with pytest.raises(ValidationError):
            resolve_invoice_cycle(card(0, 10), date(2025, 3, 1))


class TestComputeInvoiceDates:

    def test_due_after_closing_is_same_month(self):
        dates = compute_invoice_dates(card(5, 15), 3, 2025)
        assert dates.closing_date == date(2025, 3, 5)
        assert dates.due_date == date(2025, 3, 15)

    def test_due_before_closing_is_next_month(self):
        dates = compute_invoice_dates(card(28, 5), 3, 2025)
        assert dates.closing_date == date(2025, 3, 28)
        assert dates.due_date == date(2025, 4, 5)

    def test_due_before_closing_wraps_december(self):
        dates = compute_invoice_dates(card(28, 5), 12, 2024)
        assert dates.closing_date == date(2024, 12, 28)
        assert dates.due_date == date(2025, 1, 5)

    def test_equal_days_stay_in_same_month(self):
        dates = compute_invoice_dates(card(10, 10), 6, 2025)
        assert dates.closing_date == date(2025, 6, 10)
        assert dates.due_date == date(2025, 6, 10)

    def test_closing_day_clamped_in_february(self):
        assert compute_invoice_dates(card(31, 31), 2, 2024).closing_date == date(2024, 2, 29)
        assert compute_invoice_dates(card(31, 31), 2, 2023).closing_date == date(2023, 2, 28)

    def test_due_day_clamped_in_following_month(self):
        dates = compute_invoice_dates(card(31, 30), 1, 2023)
        assert dates.closing_date == date(2023, 1, 31)
        assert dates.due_date == date(2023, 2, 28)

    def test_purchase_after_closing_lands_on_next_invoice(self):
        # Closes on the 15th, due on the 10th; bought on Nov 20
        cc = card(15, 10)
        month, year = resolve_invoice_cycle(cc, date(2024, 11, 20))
        assert (month, year) == (12, 2024)
        dates = compute_invoice_dates(cc, month, year)
        assert dates.closing_date == date(2024, 12, 15)
        assert dates.due_date == date(2025, 1, 10)

    def test_rejects_invalid_month(self):
        with pytest.raises(ValidationError):
            compute_invoice_dates(card(15, 10), 13, 2025)

    def test_rejects_invalid_due_day(self):
        with pytest.raises(ValidationError):
            compute_invoice_dates(card(15, 32), 1, 2025)
