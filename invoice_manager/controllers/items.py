# controllers/items.py
"""Invoice item endpoints, including installment purchases."""

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..dependencies import get_db, get_today
from ..schemas import ledger as schemas
from ..services import balances
from ..services import cards as card_service
from ..services import items as service
from ..services.installments import generate_installments
from .invoices import load_invoice

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/invoice/{invoice_id}", response_model=List[schemas.Item], summary="List invoice items")
def list_invoice_items(
    invoice_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Items of an invoice; on a shared card only the caller's own."""
    invoice, view = load_invoice(db, invoice_id, current_user)
    return balances.filter_items(invoice.items, linked_author_id=view.linked_author_id)


@router.post("/", response_model=schemas.Item, summary="Create an item")
def create_item(
    data: schemas.ItemCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Record a single purchase. Without an invoice id it lands on the cycle of its purchase date."""
    logger.info(f"Creating item: {data.description} (${data.amount})")
    view = card_service.get_card_view(db, data.card_id, current_user)
    item = service.create_item(
        db, view,
        description=data.description,
        amount=data.amount,
        author_id=data.author_id,
        category_id=data.category_id,
        purchase_date=data.purchase_date,
        invoice_id=data.invoice_id,
        notes=data.notes,
        is_paid=data.is_paid,
        assignments=data.assignments,
        today=today,
    )
    db.commit()
    db.refresh(item)
    return item


@router.post("/installment", response_model=List[schemas.Item], summary="Create an installment purchase")
def create_installment(
    data: schemas.InstallmentCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Spread a purchase over consecutive invoices. Nothing is saved if any installment fails."""
    logger.info(
        f"Creating installment purchase: {data.description} "
        f"(${data.total_amount} in {data.total_installments}x from {data.current_installment})"
    )
    view = card_service.get_card_view(db, data.card_id, current_user)
    return generate_installments(
        db, view,
        description=data.description,
        total_amount=data.total_amount,
        total_installments=data.total_installments,
        author_id=data.author_id,
        category_id=data.category_id,
        purchase_date=data.purchase_date,
        start_installment_number=data.current_installment,
        start_month=data.start_month,
        start_year=data.start_year,
        assignments=data.assignments,
        notes=data.notes,
    )


@router.get("/group/{group_id}", response_model=List[schemas.Item], summary="List an installment group")
def list_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    return service.group_items(db, group_id, current_user)


@router.delete("/group/{group_id}", summary="Delete an installment group")
def delete_group(
    group_id: str,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Deleting installment group: {group_id}")
    count = service.delete_installment_group(db, group_id, current_user)
    db.commit()
    return {"success": True, "count": count}


@router.post("/mark-paid", summary="Mark several items as paid")
def mark_paid(
    data: schemas.ItemSelection,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Either every item is accessible and updated, or none is."""
    loaded = service.load_items(db, data.item_ids, current_user)
    for _, view in loaded:
        card_service.require_edit(view)
    count = service.mark_items_paid(db, [item for item, _ in loaded], data.is_paid)
    db.commit()
    return {"success": True, "count": count}


@router.post("/selected-total", response_model=schemas.SelectionTotal, summary="Sum selected items")
def selected_total(
    data: schemas.ItemSelection,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    items = [item for item, _ in service.load_items(db, data.item_ids, current_user)]
    return schemas.SelectionTotal(count=len(items), total=service.selected_total(items))


@router.get("/{item_id}", response_model=schemas.Item, summary="Get an item")
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    item, _ = service.load_item(db, item_id, current_user)
    return item


@router.put("/{item_id}", response_model=schemas.Item, summary="Update an item")
def update_item(
    item_id: int,
    data: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Updating item {item_id}")
    item, view = service.load_item(db, item_id, current_user)
    changes = data.model_dump(exclude_unset=True, exclude={"assignments"})
    service.update_item(db, item, view, changes, assignments=data.assignments)
    db.commit()
    db.refresh(item)
    return item


@router.put("/{item_id}/toggle-paid", response_model=schemas.Item, summary="Mark an item as paid or unpaid")
def toggle_paid(
    item_id: int,
    data: schemas.PaidStatus,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    item, view = service.load_item(db, item_id, current_user)
    card_service.require_edit(view)
    service.set_item_paid(db, item, data.is_paid)
    db.commit()
    db.refresh(item)
    return item


@router.put("/{item_id}/assignments/paid", response_model=schemas.Item, summary="Settle one author's slice")
def assignment_paid(
    item_id: int,
    data: schemas.AssignmentPaidStatus,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    item, view = service.load_item(db, item_id, current_user)
    card_service.require_edit(view)
    service.set_assignment_paid(db, item, data.author_id, data.is_paid)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}", summary="Delete an item")
def delete_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Deleting item: {item_id}")
    item, view = service.load_item(db, item_id, current_user)
    card_service.require_edit(view)
    service.delete_item(db, item)
    db.commit()
    return {"status": "success"}
