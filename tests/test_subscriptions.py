from datetime import date
from types import SimpleNamespace

import pytest

from invoice_manager import models
from invoice_manager.exceptions import ValidationError
from invoice_manager.services import subscriptions
from invoice_manager.services.categories import SUBSCRIPTIONS_CATEGORY


class TestMonthlyEquivalent:

    def test_monthly(self):
        assert subscriptions.to_monthly_equivalent(30.0, "monthly") == 30.0

    def test_semiannual(self):
        assert subscriptions.to_monthly_equivalent(60.0, "semiannual") == 10.0

    def test_annual(self):
        assert subscriptions.to_monthly_equivalent(120.0, "annual") == 10.0


class TestBillingDates:

    def test_first_billing_date_this_month(self):
        assert subscriptions.first_billing_date(25, date(2025, 3, 20)) == date(2025, 3, 25)

    def test_first_billing_date_today(self):
        assert subscriptions.first_billing_date(20, date(2025, 3, 20)) == date(2025, 3, 20)

    def test_first_billing_date_next_month(self):
        assert subscriptions.first_billing_date(5, date(2025, 3, 20)) == date(2025, 4, 5)

    def test_first_billing_date_clamped(self):
        assert subscriptions.first_billing_date(31, date(2023, 2, 1)) == date(2023, 2, 28)

    def test_advance_monthly_keeps_billing_day_after_short_month(self):
        feb = subscriptions.advance_billing_date(date(2024, 1, 31), "monthly", 31)
        assert feb == date(2024, 2, 29)
        assert subscriptions.advance_billing_date(feb, "monthly", 31) == date(2024, 3, 31)

    def test_advance_semiannual(self):
        assert subscriptions.advance_billing_date(date(2025, 8, 10), "semiannual", 10) == date(2026, 2, 10)

    def test_advance_annual(self):
        assert subscriptions.advance_billing_date(date(2024, 2, 29), "annual", 29) == date(2025, 2, 28)

    def test_rejects_unknown_cycle(self):
        with pytest.raises(ValidationError):
            subscriptions.advance_billing_date(date(2025, 1, 1), "weekly", 1)


class TestSummarize:

    def test_counts_only_running_subscriptions(self):
        subs = [
            SimpleNamespace(active=True, paused=False, amount=30.0, billing_cycle="monthly",
                            next_billing_date=date(2025, 4, 1)),
            SimpleNamespace(active=True, paused=False, amount=120.0, billing_cycle="annual",
                            next_billing_date=date(2025, 3, 25)),
            SimpleNamespace(active=True, paused=True, amount=50.0, billing_cycle="monthly",
                            next_billing_date=date(2025, 3, 21)),
        ]
        summary = subscriptions.summarize(subs, date(2025, 3, 20))
        assert summary.active_count == 2
        assert summary.monthly_total == 40.0
        assert summary.next_renewal is subs[1]
        assert summary.days_until_renewal == 5

    def test_empty(self):
        assert subscriptions.summarize([], date(2025, 3, 20)) == subscriptions.SubscriptionSummary(0, 0.0, None, None)


@pytest.fixture()
def streaming(db, seeded_card):
    user, author, card = seeded_card
    friend = models.Author(user_id=user.id, name="Bruno Lima")
    db.add(friend)
    db.flush()
    sub = models.Subscription(
        user_id=user.id,
        card_id=card.id,
        author_id=author.id,
        description="Streaming",
        amount=40.0,
        billing_day=20,
        billing_cycle="monthly",
        next_billing_date=date(2025, 1, 20),
    )
    sub.assignments = [
        models.SubscriptionAssignment(author_id=author.id, amount=20.0),
        models.SubscriptionAssignment(author_id=friend.id, amount=20.0),
    ]
    db.add(sub)
    db.commit()
    return sub


class TestMaterialize:

    def test_catches_up_every_missed_billing_date(self, db, streaming):
        created = subscriptions.materialize_due_subscriptions(db, date(2025, 3, 20))
        db.commit()

        assert [i.purchase_date for i in created] == [date(2025, 1, 20), date(2025, 2, 20), date(2025, 3, 20)]
        # Billed after the closing day, so each charge lands on the next invoice
        assert [(i.invoice.reference_month, i.invoice.reference_year) for i in created] == [
            (2, 2025), (3, 2025), (4, 2025)
        ]
        assert streaming.next_billing_date == date(2025, 4, 20)
        assert all(len(i.assignments) == 2 and not any(a.is_paid for a in i.assignments) for i in created)
        assert all(i.category.name == SUBSCRIPTIONS_CATEGORY for i in created)

    def test_nothing_due(self, db, streaming):
        assert subscriptions.materialize_due_subscriptions(db, date(2025, 1, 19)) == []

    def test_running_twice_does_not_double_bill(self, db, streaming):
        subscriptions.materialize_due_subscriptions(db, date(2025, 1, 20))
        db.commit()
        assert subscriptions.materialize_due_subscriptions(db, date(2025, 1, 20)) == []
        assert db.query(models.InvoiceItem).count() == 1

    def test_paused_subscription_is_skipped(self, db, streaming):
        streaming.paused = True
        db.commit()
        assert subscriptions.materialize_due_subscriptions(db, date(2025, 3, 20)) == []

    def test_inactive_card_is_skipped(self, db, streaming):
        streaming.card.active = False
        db.commit()
        assert subscriptions.materialize_subscription(db, streaming, date(2025, 3, 20)) == []
