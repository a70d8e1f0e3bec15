# services/balances.py
"""Totals over already-loaded invoice items.

Items may be split between several authors through ``assignments``. Any
object exposing ``author_id``, ``amount``, ``is_paid`` and an optional
``assignments`` list (each with ``author_id``, ``amount``, ``is_paid``)
works, so ORM rows and API schemas go through the same rules.

Two viewing contexts narrow an item down to one author's slice:

* ``linked_author_id``: the card is shared with the caller and pinned to
  the author that represents them on the owner's side.
* ``filter_author_id``: the caller picked an author filter.

The shared-card pin wins when both are given.
"""

from typing import Iterable, List, NamedTuple, Optional


PAID = "paid"
PARTIAL = "partial"
UNPAID = "unpaid"


class ItemShare(NamedTuple):
    amount: float
    paid_amount: float
    is_paid: bool
    included: bool


class Totals(NamedTuple):
    total: float
    paid: float
    unpaid: float


class AuthorTotals(NamedTuple):
    author: object
    total: float
    unpaid_total: float
    item_count: int


def _money(value: float) -> float:
    return round(float(value), 2)


def _assignments(item) -> list:
    return list(getattr(item, "assignments", None) or [])


def _find_assignment(item, author_id: int):
    for assignment in _assignments(item):
        if assignment.author_id == author_id:
            return assignment
    return None


def resolve_item_share(
    item,
    filter_author_id: Optional[int] = None,
    linked_author_id: Optional[int] = None,
) -> ItemShare:
    """Amount of ``item`` shown in the current view and how much of it is paid."""
    context_author_id = linked_author_id if linked_author_id is not None else filter_author_id

    if context_author_id is not None:
        assignment = _find_assignment(item, context_author_id)
        if assignment is not None:
            amount = float(assignment.amount)
            is_paid = bool(assignment.is_paid) or bool(item.is_paid)
        elif item.author_id == context_author_id:
            amount = float(item.amount)
            is_paid = bool(item.is_paid)
        else:
            return ItemShare(0.0, 0.0, False, False)
        return ItemShare(amount, amount if is_paid else 0.0, is_paid, True)

    amount = float(item.amount)
    if item.is_paid:
        return ItemShare(amount, amount, True, True)
    # Partial payment: only the settled slices count
    paid_amount = sum(float(a.amount) for a in _assignments(item) if a.is_paid)
    return ItemShare(amount, paid_amount, False, True)


def filter_items(
    items: Iterable,
    filter_author_id: Optional[int] = None,
    linked_author_id: Optional[int] = None,
) -> list:
    """Keep only the items that contribute to the view."""
    return [
        item for item in items
        if resolve_item_share(item, filter_author_id, linked_author_id).included
    ]


def compute_totals(
    items: Iterable,
    filter_author_id: Optional[int] = None,
    linked_author_id: Optional[int] = None,
) -> Totals:
    total = 0.0
    paid = 0.0
    for item in items:
        share = resolve_item_share(item, filter_author_id, linked_author_id)
        total += share.amount
        paid += share.paid_amount
    total = _money(total)
    paid = _money(paid)
    return Totals(total=total, paid=paid, unpaid=_money(total - paid))


def compute_author_totals(items: Iterable, authors: Iterable) -> List[AuthorTotals]:
    """Per-author breakdown: what each author owes on the item set and how much is still open."""
    items = list(items)
    breakdown = []
    for author in authors:
        total = 0.0
        unpaid = 0.0
        count = 0
        for item in items:
            if _assignments(item):
                assignment = _find_assignment(item, author.id)
                if assignment is None:
                    continue
                amount = float(assignment.amount)
                is_paid = bool(assignment.is_paid) or bool(item.is_paid)
            elif item.author_id == author.id:
                amount = float(item.amount)
                is_paid = bool(item.is_paid)
            else:
                continue

            total += amount
            if not is_paid:
                unpaid += amount
            count += 1

        breakdown.append(AuthorTotals(author, _money(total), _money(unpaid), count))
    return breakdown


def payment_state(item) -> str:
    """``paid``, ``unpaid`` or ``partial`` when only some assignments are settled."""
    if item.is_paid:
        return PAID
    assignments = _assignments(item)
    settled = [a for a in assignments if a.is_paid]
    if assignments and len(settled) == len(assignments):
        return PAID
    if settled:
        return PARTIAL
    return UNPAID


def display_author_name(item, authors: Iterable) -> str:
    """Name shown for an item; split items list each assignee's first name once."""
    names = {author.id: author.name for author in authors}
    assignments = _assignments(item)
    if not assignments:
        return names.get(item.author_id, "")

    first_names = []
    for assignment in assignments:
        name = names.get(assignment.author_id)
        if not name:
            continue
        first = name.split()[0]
        if first not in first_names:
            first_names.append(first)
    return ", ".join(first_names)
