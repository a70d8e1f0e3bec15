# services/items.py
"""Invoice item operations and the ownership checks around them."""

import logging
from datetime import date
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..exceptions import NotFoundError, ValidationError
from . import balances
from .cards import CardView, get_card_view, require_edit
from .cycle import resolve_invoice_cycle
from .invoices import get_or_create_invoice, refresh_invoice_totals

logger = logging.getLogger(__name__)

# Split sums may drift from the item amount by a few cents of rounding
SPLIT_TOLERANCE = 0.05


def validate_amount(amount: float, field: str = "amount") -> float:
    if amount is None or float(amount) <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return float(amount)


def validate_split(amount: float, assignments: Optional[Iterable]) -> None:
    """A split must name distinct authors and add up to the item amount."""
    assignments = list(assignments or [])
    if not assignments:
        return
    author_ids = [a.author_id for a in assignments]
    if len(set(author_ids)) != len(author_ids):
        raise ValidationError("Each author can appear only once in a split")
    for assignment in assignments:
        if float(assignment.amount) < 0:
            raise ValidationError("Split amounts must be non-negative")
    split_total = sum(float(a.amount) for a in assignments)
    if abs(split_total - float(amount)) > SPLIT_TOLERANCE:
        raise ValidationError(
            f"Split total ({split_total:.2f}) does not match the item amount ({float(amount):.2f})"
        )


def check_author(db: Session, card: models.Card, author_id: int) -> models.Author:
    """Authors on a card always belong to the card owner."""
    author = db.query(models.Author).filter(
        models.Author.id == author_id,
        models.Author.user_id == card.user_id,
    ).first()
    if not author:
        raise NotFoundError("Author not found")
    return author


def check_category(db: Session, card: models.Card, category_id: Optional[int]) -> Optional[models.Category]:
    if category_id is None:
        return None
    category = db.query(models.Category).filter(models.Category.id == category_id).first()
    if not category or (not category.is_default and category.user_id != card.user_id):
        raise NotFoundError("Category not found")
    return category


def sync_split(rows: list, assignments: Iterable, new_row: Callable, apply: Callable) -> None:
    """Make the split rows in ``rows`` match ``assignments``, keyed by author.

    Authors already in the split keep their row and only get new values;
    the (parent, author) unique key would not survive a delete and re-insert
    in the same flush.
    """
    incoming = {a.author_id: a for a in assignments}
    for row in list(rows):
        if row.author_id not in incoming:
            rows.remove(row)
    existing = {row.author_id: row for row in rows}
    for author_id, assignment in incoming.items():
        row = existing.get(author_id)
        if row is None:
            row = new_row(author_id=author_id)
            rows.append(row)
        apply(row, assignment)


def _apply_item_slice(row: models.ItemAssignment, assignment) -> None:
    row.amount = float(assignment.amount)
    row.is_paid = bool(getattr(assignment, "is_paid", False))


def set_assignments(db: Session, card: models.Card, item: models.InvoiceItem, assignments: Iterable) -> None:
    """Replace the item's split."""
    assignments = list(assignments or [])
    for assignment in assignments:
        check_author(db, card, assignment.author_id)
    sync_split(item.assignments, assignments, models.ItemAssignment, _apply_item_slice)


def load_item(db: Session, item_id: int, user_id: int) -> Tuple[models.InvoiceItem, CardView]:
    """Fetch an item the user may see.

    On a shared card only the items attributable to the caller's pinned
    author are visible.
    """
    item = db.query(models.InvoiceItem).filter(models.InvoiceItem.id == item_id).first()
    if not item:
        raise NotFoundError("Item not found")
    try:
        view = get_card_view(db, item.invoice.card_id, user_id)
    except NotFoundError:
        raise NotFoundError("Item not found")
    if view.is_shared and not balances.resolve_item_share(item, linked_author_id=view.linked_author_id).included:
        raise NotFoundError("Item not found")
    return item, view


def load_items(db: Session, item_ids: List[int], user_id: int) -> List[Tuple[models.InvoiceItem, CardView]]:
    """All-or-nothing lookup: any missing or foreign id fails the whole batch."""
    loaded = []
    for item_id in dict.fromkeys(item_ids):
        try:
            loaded.append(load_item(db, item_id, user_id))
        except NotFoundError:
            raise NotFoundError("Some items were not found or are not accessible")
    return loaded


def create_item(
    db: Session,
    view: CardView,
    description: str,
    amount: float,
    author_id: int,
    category_id: Optional[int] = None,
    purchase_date: Optional[date] = None,
    invoice_id: Optional[int] = None,
    notes: Optional[str] = None,
    is_paid: bool = False,
    assignments: Optional[Iterable] = None,
    today: Optional[date] = None,
) -> models.InvoiceItem:
    """Add a single charge, on an explicit invoice or on the cycle containing the purchase date."""
    require_edit(view)
    card = view.card
    if not description or not description.strip():
        raise ValidationError("Description is required")
    amount = validate_amount(amount)
    validate_split(amount, assignments)
    check_author(db, card, author_id)
    check_category(db, card, category_id)

    if invoice_id is not None:
        invoice = db.query(models.Invoice).filter(
            models.Invoice.id == invoice_id,
            models.Invoice.card_id == card.id,
        ).first()
        if not invoice:
            raise NotFoundError("Invoice not found")
    else:
        month, year = resolve_invoice_cycle(card, purchase_date or today or date.today())
        invoice = get_or_create_invoice(db, card, month, year)

    item = models.InvoiceItem(
        description=description.strip(),
        amount=amount,
        category_id=category_id,
        author_id=author_id,
        is_paid=is_paid,
        is_installment=False,
        purchase_date=purchase_date,
        notes=notes,
    )
    invoice.items.append(item)
    set_assignments(db, card, item, assignments)
    db.flush()
    refresh_invoice_totals(db, invoice)
    logger.info(f"Added item '{item.description}' ({amount:.2f}) to invoice {invoice.id}")
    return item


def update_item(
    db: Session,
    item: models.InvoiceItem,
    view: CardView,
    changes: dict,
    assignments: Optional[Iterable] = None,
) -> models.InvoiceItem:
    """Apply partial changes. ``assignments`` replaces the split when not None."""
    require_edit(view)
    card = view.card
    if "description" in changes:
        if not changes["description"] or not changes["description"].strip():
            raise ValidationError("Description is required")
        item.description = changes["description"].strip()
    if "amount" in changes:
        item.amount = validate_amount(changes["amount"])
    if "author_id" in changes:
        check_author(db, card, changes["author_id"])
        item.author_id = changes["author_id"]
    if "category_id" in changes:
        check_category(db, card, changes["category_id"])
        item.category_id = changes["category_id"]
    if "purchase_date" in changes:
        item.purchase_date = changes["purchase_date"]
    if "notes" in changes:
        item.notes = changes["notes"]

    if assignments is not None:
        validate_split(item.amount, assignments)
        set_assignments(db, card, item, assignments)
    elif "amount" in changes:
        validate_split(item.amount, item.assignments)

    db.flush()
    refresh_invoice_totals(db, item.invoice)
    return item


def set_item_paid(db: Session, item: models.InvoiceItem, is_paid: bool) -> models.InvoiceItem:
    """Settle or reopen an item; its assignments follow."""
    item.is_paid = is_paid
    for assignment in item.assignments:
        assignment.is_paid = is_paid
    refresh_invoice_totals(db, item.invoice)
    return item


def set_assignment_paid(db: Session, item: models.InvoiceItem, author_id: int, is_paid: bool) -> models.InvoiceItem:
    """Settle one author's slice. The item counts as paid once every slice is."""
    for assignment in item.assignments:
        if assignment.author_id == author_id:
            assignment.is_paid = is_paid
            break
    else:
        raise NotFoundError("Assignment not found")
    item.is_paid = all(a.is_paid for a in item.assignments)
    refresh_invoice_totals(db, item.invoice)
    return item


def mark_items_paid(db: Session, items: Iterable[models.InvoiceItem], is_paid: bool = True) -> int:
    count = 0
    touched = {}
    for item in items:
        item.is_paid = is_paid
        for assignment in item.assignments:
            assignment.is_paid = is_paid
        touched[item.invoice_id] = item.invoice
        count += 1
    for invoice in touched.values():
        refresh_invoice_totals(db, invoice)
    return count


def delete_item(db: Session, item: models.InvoiceItem) -> None:
    invoice = item.invoice
    invoice.items.remove(item)
    db.delete(item)
    db.flush()
    refresh_invoice_totals(db, invoice)


def group_items(db: Session, group_id: str, user_id: int) -> List[models.InvoiceItem]:
    """Items of an installment sequence visible to the user, in installment order."""
    candidates = db.query(models.InvoiceItem).filter(
        models.InvoiceItem.installment_group_id == group_id
    ).order_by(models.InvoiceItem.installment_number).all()
    visible = []
    for item in candidates:
        try:
            load_item(db, item.id, user_id)
        except NotFoundError:
            continue
        visible.append(item)
    return visible


def delete_installment_group(db: Session, group_id: str, user_id: int) -> int:
    items = group_items(db, group_id, user_id)
    if not items:
        raise NotFoundError("Installment group not found")
    for item in items:
        _, view = load_item(db, item.id, user_id)
        require_edit(view)
    invoices = {}
    for item in items:
        invoices[item.invoice_id] = item.invoice
        item.invoice.items.remove(item)
        db.delete(item)
    db.flush()
    for invoice in invoices.values():
        refresh_invoice_totals(db, invoice)
    logger.info(f"Deleted installment group {group_id} ({len(items)} items)")
    return len(items)


def selected_total(items: Iterable[models.InvoiceItem]) -> float:
    return round(sum(float(item.amount) for item in items), 2)
