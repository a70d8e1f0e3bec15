# services/invoices.py
"""Invoice lifecycle: lazy creation, totals, status changes and summaries."""

import logging
from datetime import date
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from .. import models
from ..exceptions import ValidationError
from . import balances
from .cards import CardView
from .cycle import compute_invoice_dates, validate_month

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 7


class MonthlyTotal(NamedTuple):
    reference_year: int
    reference_month: int
    total_cards: int
    total_amount: float
    paid_amount: float
    remaining_amount: float


class UpcomingPayment(NamedTuple):
    card: models.Card
    invoice: models.Invoice
    unpaid_amount: float
    total_unpaid_amount: Optional[float]  # whole card, owners only
    is_shared: bool
    due_date: date
    diff_days: int
    is_overdue: bool
    is_due_today: bool
    is_due_soon: bool


def find_invoice(db: Session, card_id: int, month: int, year: int) -> Optional[models.Invoice]:
    return db.query(models.Invoice).filter(
        models.Invoice.card_id == card_id,
        models.Invoice.reference_month == month,
        models.Invoice.reference_year == year,
    ).first()


def get_or_create_invoice(db: Session, card: models.Card, month: int, year: int) -> models.Invoice:
    """Return the card's invoice for the month, creating it when missing."""
    validate_month(month)
    invoice = find_invoice(db, card.id, month, year)
    if invoice is not None:
        return invoice

    closing_date, due_date = compute_invoice_dates(card, month, year)
    invoice = models.Invoice(
        card_id=card.id,
        reference_month=month,
        reference_year=year,
        closing_date=closing_date,
        due_date=due_date,
        total_amount=0.0,
        paid_amount=0.0,
        status="open",
    )
    db.add(invoice)
    db.flush()  # Generate ID
    logger.info(f"Created invoice {month:02d}/{year} for card {card.id}")
    return invoice


def invoice_items(db: Session, invoice: models.Invoice) -> List[models.InvoiceItem]:
    db.flush()
    return db.query(models.InvoiceItem).filter(
        models.InvoiceItem.invoice_id == invoice.id
    ).order_by(models.InvoiceItem.id).all()


def refresh_invoice_totals(db: Session, invoice: models.Invoice) -> models.Invoice:
    """Recompute stored totals from the invoice's items, partial payments included."""
    totals = balances.compute_totals(invoice_items(db, invoice))
    invoice.total_amount = totals.total
    invoice.paid_amount = totals.paid
    return invoice


def update_status(db: Session, invoice: models.Invoice, status: str) -> models.Invoice:
    if status not in models.INVOICE_STATUSES:
        raise ValidationError(f"Invalid invoice status: {status}")
    logger.info(f"Invoice {invoice.id}: {invoice.status} -> {status}")
    invoice.status = status
    return invoice


def close_invoice(db: Session, invoice: models.Invoice) -> models.Invoice:
    return update_status(db, invoice, "closed")


def mark_invoice_paid(db: Session, invoice: models.Invoice) -> models.Invoice:
    """Settle every item and assignment of the invoice."""
    for item in invoice_items(db, invoice):
        item.is_paid = True
        for assignment in item.assignments:
            assignment.is_paid = True
    refresh_invoice_totals(db, invoice)
    return update_status(db, invoice, "paid")


def check_overdue_invoices(db: Session, today: date, card_ids: Optional[Iterable[int]] = None) -> int:
    """Flag open or closed invoices past their due date that still have a balance."""
    query = db.query(models.Invoice).filter(
        models.Invoice.status.in_(["open", "closed"]),
        models.Invoice.due_date < today,
        models.Invoice.paid_amount < models.Invoice.total_amount,
    )
    if card_ids is not None:
        query = query.filter(models.Invoice.card_id.in_(list(card_ids)))

    count = 0
    for invoice in query.all():
        invoice.status = "overdue"
        count += 1
    if count:
        logger.info(f"Marked {count} invoice(s) as overdue")
    return count


def delete_invoice(db: Session, invoice: models.Invoice) -> None:
    if invoice_items(db, invoice):
        raise ValidationError("Cannot delete an invoice that still has items")
    db.delete(invoice)


def monthly_totals(views: Iterable[CardView], limit: int = 12) -> List[MonthlyTotal]:
    """Per-month totals over the given cards, newest month first."""
    months = {}
    for view in views:
        for invoice in view.card.invoices:
            totals = balances.compute_totals(invoice.items, linked_author_id=view.linked_author_id)
            key = (invoice.reference_year, invoice.reference_month)
            entry = months.setdefault(key, {"cards": set(), "total": 0.0, "paid": 0.0})
            entry["cards"].add(view.card.id)
            entry["total"] += totals.total
            entry["paid"] += totals.paid

    result = []
    for (year, month), entry in sorted(months.items(), reverse=True):
        total = round(entry["total"], 2)
        paid = round(entry["paid"], 2)
        result.append(MonthlyTotal(year, month, len(entry["cards"]), total, paid, round(total - paid, 2)))
    return result[:limit]


def upcoming_payments(
    views: Iterable[CardView],
    today: date,
    max_days: Optional[int] = None,
) -> List[UpcomingPayment]:
    """Oldest invoice with an open balance for each card, soonest due first.

    Overdue invoices always show up; future ones only inside ``max_days``.
    """
    results = []
    for view in views:
        if not view.card.active:
            continue

        pending = []
        for invoice in view.card.invoices:
            slice_totals = balances.compute_totals(invoice.items, linked_author_id=view.linked_author_id)
            if slice_totals.unpaid > 0:
                pending.append((invoice, slice_totals))
        if not pending:
            continue

        pending.sort(key=lambda p: (p[0].reference_year, p[0].reference_month))
        invoice, slice_totals = pending[0]

        diff_days = (invoice.due_date - today).days
        if max_days is not None and diff_days > max_days:
            continue

        total_unpaid = None
        if not view.is_shared:
            total_unpaid = slice_totals.unpaid
        results.append(UpcomingPayment(
            card=view.card,
            invoice=invoice,
            unpaid_amount=slice_totals.unpaid,
            total_unpaid_amount=total_unpaid,
            is_shared=view.is_shared,
            due_date=invoice.due_date,
            diff_days=diff_days,
            is_overdue=diff_days < 0,
            is_due_today=diff_days == 0,
            is_due_soon=0 < diff_days <= DUE_SOON_DAYS,
        ))

    results.sort(key=lambda p: p.due_date)
    return results
