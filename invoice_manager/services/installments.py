# services/installments.py
"""Installment purchases.

A purchase split into N installments becomes one item per remaining
installment, each on the invoice of a consecutive month. All items share
an ``installment_group_id`` so the sequence can be listed or deleted as a
whole. Creation is all-or-nothing: any failure rolls back every invoice
and item written so far.
"""

import logging
import uuid
from datetime import date
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..exceptions import InstallmentError, InvoiceManagerError, ValidationError
from .cards import CardView, require_edit
from .cycle import next_month, resolve_invoice_cycle, validate_month
from .invoices import get_or_create_invoice, refresh_invoice_totals
from .items import check_author, check_category, set_assignments, validate_amount, validate_split

logger = logging.getLogger(__name__)


class PlannedInstallment(NamedTuple):
    number: int
    month: int
    year: int
    amount: float
    description: str


class InstallmentSplit(NamedTuple):
    author_id: int
    amount: float
    is_paid: bool = False


def installment_amount(total_amount: float, total_installments: int) -> float:
    """Even share rounded to cents. The remainder is not reconciled, so 100 / 3 -> 33.33 each."""
    return round(float(total_amount) / total_installments, 2)


def plan_installments(
    card,
    description: str,
    total_amount: float,
    total_installments: int,
    purchase_date: Optional[date] = None,
    start_installment_number: int = 1,
    start_month: Optional[int] = None,
    start_year: Optional[int] = None,
) -> List[PlannedInstallment]:
    """Schedule of the installments still to be charged, one calendar month apart.

    The first planned installment lands on ``start_month``/``start_year``
    when given, otherwise on the invoice cycle containing ``purchase_date``.
    """
    if not description or not description.strip():
        raise ValidationError("Description is required")
    validate_amount(total_amount, "total_amount")
    if total_installments is None or int(total_installments) < 1:
        raise ValidationError("total_installments must be at least 1")
    total_installments = int(total_installments)
    start_installment_number = int(start_installment_number or 1)
    if not 1 <= start_installment_number <= total_installments:
        raise ValidationError(
            f"start installment must be between 1 and {total_installments}"
        )

    if start_month is not None and start_year is not None:
        month, year = validate_month(start_month), int(start_year)
    elif purchase_date is not None:
        month, year = resolve_invoice_cycle(card, purchase_date)
    else:
        raise ValidationError("purchase_date or start_month/start_year is required")

    amount = installment_amount(total_amount, total_installments)
    base = description.strip()
    plan = []
    for number in range(start_installment_number, total_installments + 1):
        plan.append(PlannedInstallment(
            number=number,
            month=month,
            year=year,
            amount=amount,
            description=f"{base} ({number}/{total_installments})",
        ))
        month, year = next_month(month, year)
    return plan


def split_per_installment(assignments: Optional[Iterable], total_installments: int) -> List[InstallmentSplit]:
    """Scale a split of the whole purchase down to one installment."""
    return [
        InstallmentSplit(a.author_id, round(float(a.amount) / total_installments, 2))
        for a in (assignments or [])
    ]


def generate_installments(
    db: Session,
    view: CardView,
    description: str,
    total_amount: float,
    total_installments: int,
    author_id: int,
    category_id: Optional[int] = None,
    purchase_date: Optional[date] = None,
    start_installment_number: int = 1,
    start_month: Optional[int] = None,
    start_year: Optional[int] = None,
    assignments: Optional[Iterable] = None,
    notes: Optional[str] = None,
) -> List[models.InvoiceItem]:
    """Persist an installment sequence and commit it, or roll back entirely."""
    require_edit(view)
    card = view.card
    assignments = list(assignments or [])
    plan = plan_installments(
        card, description, total_amount, total_installments,
        purchase_date=purchase_date,
        start_installment_number=start_installment_number,
        start_month=start_month,
        start_year=start_year,
    )
    validate_split(total_amount, assignments)
    check_author(db, card, author_id)
    check_category(db, card, category_id)

    group_id = str(uuid.uuid4())
    per_installment_split = split_per_installment(assignments, int(total_installments))
    logger.info(
        f"Generating {len(plan)} installment(s) of {plan[0].amount:.2f} "
        f"for card {card.id} (group {group_id})"
    )

    items = []
    try:
        invoices = {}
        for planned in plan:
            invoice = get_or_create_invoice(db, card, planned.month, planned.year)
            item = models.InvoiceItem(
                description=planned.description,
                amount=planned.amount,
                category_id=category_id,
                author_id=author_id,
                is_paid=False,
                is_installment=True,
                installment_number=planned.number,
                total_installments=int(total_installments),
                installment_group_id=group_id,
                purchase_date=purchase_date,
                notes=notes,
            )
            invoice.items.append(item)
            set_assignments(db, card, item, per_installment_split)
            invoices[invoice.id] = invoice
            items.append(item)

        db.flush()
        for invoice in invoices.values():
            refresh_invoice_totals(db, invoice)
        db.commit()
    except InvoiceManagerError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Installment generation failed for card {card.id}; rolled back")
        raise InstallmentError("Could not create installments") from exc

    for item in items:
        db.refresh(item)
    return items
