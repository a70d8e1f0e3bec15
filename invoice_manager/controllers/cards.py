# controllers/cards.py
"""Card endpoints: CRUD, ordering, sharing and the per-month invoice view."""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..dependencies import get_db, get_today
from ..schemas import ledger as schemas
from ..services import balances, cards as card_service
from ..services.cycle import compute_invoice_dates, resolve_invoice_cycle

logger = logging.getLogger(__name__)

router = APIRouter()


def card_to_schema(view: card_service.CardView) -> schemas.Card:
    card = view.card
    return schemas.Card(
        id=card.id,
        user_id=card.user_id,
        name=card.name,
        card_limit=card.card_limit,
        closing_day=card.closing_day,
        due_day=card.due_day,
        color=card.color,
        active=card.active,
        sort_order=card.sort_order,
        is_shared=view.is_shared,
        owner_name=view.owner_name,
        author_id_on_owner=view.author_id_on_owner,
        permission=view.permission,
        **card_service.card_balance(view),
    )


def item_to_view(item, authors, filter_author_id=None, linked_author_id=None) -> schemas.ItemView:
    share = balances.resolve_item_share(item, filter_author_id, linked_author_id)
    if filter_author_id is None and linked_author_id is None:
        state = balances.payment_state(item)
    else:
        state = balances.PAID if share.is_paid else balances.UNPAID
    return schemas.ItemView(
        **schemas.Item.model_validate(item).model_dump(),
        display_amount=share.amount,
        payment_state=state,
        author_name=balances.display_author_name(item, authors),
    )


def build_invoice_view(
    view: card_service.CardView,
    month: int,
    year: int,
    today: date,
    filter_author_id: Optional[int] = None,
) -> schemas.InvoiceView:
    """Invoice of one month with items and totals narrowed to the caller's view."""
    card = view.card
    invoice = None
    for candidate in card.invoices:
        if candidate.reference_month == month and candidate.reference_year == year:
            invoice = candidate
            break

    if invoice is not None:
        closing_date, due_date = invoice.closing_date, invoice.due_date
        all_items = list(invoice.items)
    else:
        closing_date, due_date = compute_invoice_dates(card, month, year)
        all_items = []

    owner_authors = list(card.user.authors)
    linked = view.linked_author_id
    if linked is not None:
        filter_author_id = None
        breakdown_authors = [a for a in owner_authors if a.id == linked]
    else:
        breakdown_authors = owner_authors

    visible = balances.filter_items(all_items, filter_author_id, linked)
    totals = balances.compute_totals(visible, filter_author_id, linked)
    breakdown = balances.compute_author_totals(
        visible if linked is not None else all_items, breakdown_authors
    )

    current = resolve_invoice_cycle(card, today)
    return schemas.InvoiceView(
        card_id=card.id,
        reference_month=month,
        reference_year=year,
        closing_date=closing_date,
        due_date=due_date,
        is_current=(current.month, current.year) == (month, year),
        invoice=schemas.Invoice.model_validate(invoice) if invoice is not None else None,
        items=[item_to_view(i, owner_authors, filter_author_id, linked) for i in visible],
        totals=schemas.Totals(**totals._asdict()),
        author_totals=[
            schemas.AuthorTotal(
                author_id=entry.author.id,
                name=entry.author.name,
                total=entry.total,
                unpaid_total=entry.unpaid_total,
                item_count=entry.item_count,
            )
            for entry in breakdown
        ],
    )


@router.get("/", response_model=List[schemas.Card], summary="List my cards")
def list_cards(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Owned and shared cards, active first, then by display order."""
    views = card_service.accessible_cards(db, current_user, include_inactive=include_inactive)
    return [card_to_schema(v) for v in views]


@router.post("/", response_model=schemas.Card, summary="Create a card")
def create_card(
    data: schemas.CardCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Creating card: {data.name}")
    last_order = db.query(func.max(models.Card.sort_order)).filter(
        models.Card.user_id == current_user
    ).scalar()

    card_data = data.model_dump()
    if card_data.get("color") is None:
        card_data.pop("color")
    card = models.Card(
        user_id=current_user,
        sort_order=(last_order or 0) + 1,
        **card_data
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card_to_schema(card_service.get_card_view(db, card.id, current_user))


@router.put("/order", response_model=List[schemas.Card], summary="Reorder cards")
def reorder_cards(
    data: schemas.CardOrder,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Persist the display order given as a list of owned card ids."""
    owned = {
        c.id: c for c in db.query(models.Card).filter(models.Card.user_id == current_user).all()
    }
    for position, card_id in enumerate(data.card_ids, start=1):
        if card_id not in owned:
            raise HTTPException(status_code=404, detail=f"Card {card_id} not found")
        owned[card_id].sort_order = position
    db.commit()
    return [card_to_schema(v) for v in card_service.accessible_cards(db, current_user)]


@router.get("/{card_id}", response_model=schemas.Card, summary="Get a card")
def get_card(
    card_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    return card_to_schema(card_service.get_card_view(db, card_id, current_user))


@router.put("/{card_id}", response_model=schemas.Card, summary="Update a card")
def update_card(
    card_id: int,
    data: schemas.CardUpdate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Update card settings. Existing invoices keep the dates they were created with."""
    logger.info(f"Updating card {card_id}")
    view = card_service.require_edit(card_service.get_card_view(db, card_id, current_user))
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(view.card, field, value)
    db.commit()
    db.refresh(view.card)
    return card_to_schema(view)


@router.post("/{card_id}/deactivate", summary="Deactivate a card")
def deactivate_card(
    card_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Deactivating card {card_id}")
    view = card_service.require_owner(card_service.get_card_view(db, card_id, current_user))
    view.card.active = False
    db.commit()
    return {"success": True}


@router.get("/{card_id}/current-invoice", response_model=schemas.InvoiceCycle, summary="Open invoice cycle")
def current_invoice_cycle(
    card_id: int,
    on: Optional[date] = Query(None, description="Date to resolve; defaults to today"),
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Which month's invoice is open on the given date, and when it closes and is due."""
    card = card_service.get_card_view(db, card_id, current_user).card
    month, year = resolve_invoice_cycle(card, on or today)
    closing_date, due_date = compute_invoice_dates(card, month, year)
    return schemas.InvoiceCycle(
        card_id=card.id,
        reference_month=month,
        reference_year=year,
        closing_date=closing_date,
        due_date=due_date,
    )


@router.get("/{card_id}/invoices", response_model=List[schemas.Invoice], summary="List card invoices")
def list_card_invoices(
    card_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    card_service.get_card_view(db, card_id, current_user)
    return db.query(models.Invoice).filter(models.Invoice.card_id == card_id).order_by(
        models.Invoice.reference_year.desc(), models.Invoice.reference_month.desc()
    ).all()


@router.get("/{card_id}/invoices/current", response_model=schemas.InvoiceView, summary="Current invoice view")
def current_invoice_view(
    card_id: int,
    author_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    view = card_service.get_card_view(db, card_id, current_user)
    month, year = resolve_invoice_cycle(view.card, today)
    return build_invoice_view(view, month, year, today, author_id)


@router.get("/{card_id}/invoices/{year}/{month}", response_model=schemas.InvoiceView, summary="Invoice view")
def invoice_view(
    card_id: int,
    year: int,
    month: int,
    author_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Items and totals of one month, optionally filtered to an author."""
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail=f"Invalid month: {month}")
    logger.debug(f"Fetching invoice view {year}/{month} for card {card_id}")
    view = card_service.get_card_view(db, card_id, current_user)
    return build_invoice_view(view, month, year, today, author_id)


# ============= SHARING =============

@router.get("/{card_id}/shares", response_model=List[schemas.CardShare], summary="List card shares")
def list_shares(
    card_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    view = card_service.require_owner(card_service.get_card_view(db, card_id, current_user))
    return view.card.shares


@router.post("/{card_id}/shares", response_model=schemas.CardShare, summary="Share a card")
def share_card(
    card_id: int,
    data: schemas.CardShareCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Share the card with the account linked to one of my authors."""
    view = card_service.require_owner(card_service.get_card_view(db, card_id, current_user))
    author = db.query(models.Author).filter(
        models.Author.id == data.author_id,
        models.Author.user_id == current_user
    ).first()
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    if author.linked_user_id is None:
        raise HTTPException(status_code=400, detail="Author is not linked to an account")

    existing = db.query(models.CardShare).filter(
        models.CardShare.card_id == card_id,
        models.CardShare.user_id == author.linked_user_id
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Card is already shared with this account")

    share = models.CardShare(
        card_id=view.card.id,
        user_id=author.linked_user_id,
        author_id_on_owner=author.id,
        permission=data.permission,
    )
    db.add(share)
    db.commit()
    db.refresh(share)
    logger.info(f"Shared card {card_id} with user {share.user_id} as author {author.id}")
    return share


@router.delete("/{card_id}/shares/{share_id}", summary="Revoke a share")
def revoke_share(
    card_id: int,
    share_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    card_service.require_owner(card_service.get_card_view(db, card_id, current_user))
    share = db.query(models.CardShare).filter(
        models.CardShare.id == share_id,
        models.CardShare.card_id == card_id
    ).first()
    if not share:
        raise HTTPException(status_code=404, detail="Share not found")
    db.delete(share)
    db.commit()
    return {"status": "success"}
