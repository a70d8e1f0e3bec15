# controllers/invoices.py
"""Invoice endpoints: listings, summaries and status changes."""

import logging
from datetime import date
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..dependencies import get_db, get_today
from ..schemas import ledger as schemas
from ..services import cards as card_service
from ..services import invoices as service
from ..exceptions import NotFoundError
from .cards import build_invoice_view

logger = logging.getLogger(__name__)

router = APIRouter()


def load_invoice(db: Session, invoice_id: int, user_id: int) -> Tuple[models.Invoice, card_service.CardView]:
    invoice = db.query(models.Invoice).filter(models.Invoice.id == invoice_id).first()
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    try:
        view = card_service.get_card_view(db, invoice.card_id, user_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice, view


@router.get("/", response_model=List[schemas.Invoice], summary="List my invoices")
def list_invoices(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Invoices of every card I can see, newest first, then by due date."""
    card_ids = [v.card.id for v in card_service.accessible_cards(db, current_user)]
    if not card_ids:
        return []
    query = db.query(models.Invoice).filter(models.Invoice.card_id.in_(card_ids))
    if year is not None:
        query = query.filter(models.Invoice.reference_year == year)
    if month is not None:
        query = query.filter(models.Invoice.reference_month == month)
    return query.order_by(
        models.Invoice.reference_year.desc(),
        models.Invoice.reference_month.desc(),
        models.Invoice.due_date.asc()
    ).all()


@router.get("/monthly-totals", response_model=List[schemas.MonthlyTotal], summary="Totals per month")
def monthly_totals(
    months: int = Query(6, ge=1, le=120),
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    views = card_service.accessible_cards(db, current_user)
    return [schemas.MonthlyTotal(**t._asdict()) for t in service.monthly_totals(views, limit=months)]


@router.get("/upcoming", response_model=List[schemas.UpcomingPayment], summary="Upcoming payments")
def upcoming(
    days: Optional[int] = Query(15, ge=0, description="Window in days; omit the value to list all"),
    all_pending: bool = False,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Oldest unpaid invoice of each card. Overdue invoices always appear."""
    views = card_service.accessible_cards(db, current_user, include_inactive=False)
    payments = service.upcoming_payments(views, today, None if all_pending else days)
    return [
        schemas.UpcomingPayment(
            card_id=p.card.id,
            card_name=p.card.name,
            card_color=p.card.color,
            invoice_id=p.invoice.id,
            reference_month=p.invoice.reference_month,
            reference_year=p.invoice.reference_year,
            unpaid_amount=p.unpaid_amount,
            total_unpaid_amount=p.total_unpaid_amount,
            is_shared=p.is_shared,
            due_date=p.due_date,
            diff_days=p.diff_days,
            is_overdue=p.is_overdue,
            is_due_today=p.is_due_today,
            is_due_soon=p.is_due_soon,
        )
        for p in payments
    ]


@router.post("/check-overdue", summary="Flag overdue invoices")
def check_overdue(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    owned = [v.card.id for v in card_service.accessible_cards(db, current_user) if not v.is_shared]
    updated = service.check_overdue_invoices(db, today, owned) if owned else 0
    db.commit()
    return {"updated": updated}


@router.post("/get-or-create", response_model=schemas.Invoice, summary="Get or create an invoice")
def get_or_create(
    data: schemas.InvoiceRequest,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    view = card_service.require_edit(card_service.get_card_view(db, data.card_id, current_user))
    invoice = service.get_or_create_invoice(db, view.card, data.month, data.year)
    db.commit()
    db.refresh(invoice)
    return invoice


@router.get("/{invoice_id}", response_model=schemas.InvoiceView, summary="Get an invoice")
def get_invoice(
    invoice_id: int,
    author_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    invoice, view = load_invoice(db, invoice_id, current_user)
    return build_invoice_view(view, invoice.reference_month, invoice.reference_year, today, author_id)


@router.put("/{invoice_id}/status", response_model=schemas.Invoice, summary="Update invoice status")
def update_status(
    invoice_id: int,
    data: schemas.InvoiceStatusUpdate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    invoice, view = load_invoice(db, invoice_id, current_user)
    card_service.require_edit(view)
    service.update_status(db, invoice, data.status)
    db.commit()
    db.refresh(invoice)
    return invoice


@router.post("/{invoice_id}/close", response_model=schemas.Invoice, summary="Close an invoice")
def close_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    invoice, view = load_invoice(db, invoice_id, current_user)
    card_service.require_edit(view)
    service.close_invoice(db, invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


@router.post("/{invoice_id}/pay", response_model=schemas.Invoice, summary="Mark an invoice as paid")
def pay_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Settle every item of the invoice in one transaction."""
    logger.info(f"Paying invoice {invoice_id}")
    invoice, view = load_invoice(db, invoice_id, current_user)
    card_service.require_owner(view)
    service.mark_invoice_paid(db, invoice)
    db.commit()
    db.refresh(invoice)
    return invoice


@router.delete("/{invoice_id}", summary="Delete an empty invoice")
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    invoice, view = load_invoice(db, invoice_id, current_user)
    card_service.require_owner(view)
    service.delete_invoice(db, invoice)
    db.commit()
    return {"status": "success"}
