# services/subscriptions.py
"""Recurring charges.

A subscription is a template. On each billing date it turns into an
invoice item on the card's open cycle and its next billing date moves
forward by one cycle.
"""

import logging
from datetime import date
from typing import Iterable, List, NamedTuple, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from .. import models
from ..exceptions import ValidationError
from .categories import get_subscriptions_category
from .cycle import clamp_day, resolve_invoice_cycle, validate_day
from .invoices import get_or_create_invoice, refresh_invoice_totals
from .items import check_author, sync_split, validate_split

logger = logging.getLogger(__name__)

CYCLE_MONTHS = {"monthly": 1, "semiannual": 6, "annual": 12}


class SubscriptionSummary(NamedTuple):
    active_count: int
    monthly_total: float
    next_renewal: Optional[models.Subscription]
    days_until_renewal: Optional[int]


def validate_cycle(billing_cycle: str) -> str:
    if billing_cycle not in CYCLE_MONTHS:
        raise ValidationError(f"Invalid billing cycle: {billing_cycle}")
    return billing_cycle


def to_monthly_equivalent(amount: float, billing_cycle: Optional[str]) -> float:
    if billing_cycle == "annual":
        return float(amount) / 12
    if billing_cycle == "semiannual":
        return float(amount) / 6
    return float(amount)


def first_billing_date(billing_day: int, today: date) -> date:
    """Next date on or after ``today`` that falls on ``billing_day``."""
    validate_day(billing_day, "billing_day")
    candidate = clamp_day(today.year, today.month, billing_day)
    if candidate < today:
        following = today + relativedelta(months=1)
        candidate = clamp_day(following.year, following.month, billing_day)
    return candidate


def advance_billing_date(current: date, billing_cycle: str, billing_day: int) -> date:
    """Move one cycle forward, keeping the billing day where the month allows it."""
    following = current + relativedelta(months=CYCLE_MONTHS[validate_cycle(billing_cycle)])
    return clamp_day(following.year, following.month, billing_day)


def _apply_subscription_slice(row: models.SubscriptionAssignment, assignment) -> None:
    row.amount = float(assignment.amount)


def set_assignments(db: Session, card: models.Card, subscription: models.Subscription, assignments) -> None:
    """Validate and replace the split copied onto every charge."""
    assignments = list(assignments or [])
    validate_split(subscription.amount, assignments)
    for assignment in assignments:
        check_author(db, card, assignment.author_id)
    sync_split(subscription.assignments, assignments, models.SubscriptionAssignment, _apply_subscription_slice)


def is_billable(subscription: models.Subscription) -> bool:
    return bool(subscription.active) and not subscription.paused


def materialize_subscription(
    db: Session,
    subscription: models.Subscription,
    today: date,
    category_id: Optional[int] = None,
) -> List[models.InvoiceItem]:
    """Charge every billing date up to ``today`` that has not been charged yet."""
    created = []
    card = subscription.card
    if not is_billable(subscription) or not card.active:
        return created

    touched = {}
    while subscription.next_billing_date <= today:
        billing_date = subscription.next_billing_date
        month, year = resolve_invoice_cycle(card, billing_date)
        invoice = get_or_create_invoice(db, card, month, year)
        item = models.InvoiceItem(
            description=subscription.description,
            amount=float(subscription.amount),
            category_id=subscription.category_id or category_id,
            author_id=subscription.author_id,
            is_paid=False,
            is_installment=False,
            purchase_date=billing_date,
        )
        item.assignments = [
            models.ItemAssignment(author_id=a.author_id, amount=float(a.amount), is_paid=False)
            for a in subscription.assignments
        ]
        invoice.items.append(item)
        touched[invoice.id] = invoice
        created.append(item)
        subscription.next_billing_date = advance_billing_date(
            billing_date, subscription.billing_cycle, subscription.billing_day
        )

    db.flush()
    for invoice in touched.values():
        refresh_invoice_totals(db, invoice)
    if created:
        logger.info(
            f"Subscription {subscription.id} charged {len(created)} time(s); "
            f"next billing {subscription.next_billing_date}"
        )
    return created


def materialize_due_subscriptions(
    db: Session,
    today: date,
    user_id: Optional[int] = None,
) -> List[models.InvoiceItem]:
    """Charge every active, non-paused subscription whose billing date has arrived."""
    query = db.query(models.Subscription).filter(
        models.Subscription.active.is_(True),
        models.Subscription.paused.is_(False),
        models.Subscription.next_billing_date <= today,
    )
    if user_id is not None:
        query = query.filter(models.Subscription.user_id == user_id)

    subscriptions = query.all()
    if not subscriptions:
        return []
    category = get_subscriptions_category(db)
    created = []
    for subscription in subscriptions:
        created.extend(materialize_subscription(db, subscription, today, category.id))
    return created


def summarize(subscriptions: Iterable[models.Subscription], today: date) -> SubscriptionSummary:
    billable = [s for s in subscriptions if is_billable(s)]
    monthly_total = round(sum(to_monthly_equivalent(s.amount, s.billing_cycle) for s in billable), 2)
    if not billable:
        return SubscriptionSummary(0, 0.0, None, None)
    next_renewal = min(billable, key=lambda s: s.next_billing_date)
    return SubscriptionSummary(
        active_count=len(billable),
        monthly_total=monthly_total,
        next_renewal=next_renewal,
        days_until_renewal=(next_renewal.next_billing_date - today).days,
    )
