# services/cards.py
"""Card access rules.

A user reaches a card either by owning it or through a ``CardShare``. A
shared card is always seen through the author that represents the caller
on the owner's side, so every amount on it narrows to that author's slice.
"""

import logging
from typing import List, NamedTuple, Optional

from sqlalchemy.orm import Session

from .. import models
from ..exceptions import NotFoundError, PermissionDeniedError
from . import balances

logger = logging.getLogger(__name__)


class CardView(NamedTuple):
    card: models.Card
    is_shared: bool
    owner_name: Optional[str]
    author_id_on_owner: Optional[int]
    permission: str

    @property
    def linked_author_id(self) -> Optional[int]:
        return self.author_id_on_owner if self.is_shared else None


def _owned_view(card) -> CardView:
    return CardView(card, False, None, None, "admin")


def _shared_view(share) -> CardView:
    return CardView(share.card, True, share.card.user.name, share.author_id_on_owner, share.permission)


def accessible_cards(db: Session, user_id: int, include_inactive: bool = True) -> List[CardView]:
    """Owned cards followed by cards shared with the user."""
    owned = db.query(models.Card).filter(models.Card.user_id == user_id)
    shared = db.query(models.CardShare).join(models.Card).filter(models.CardShare.user_id == user_id)
    if not include_inactive:
        owned = owned.filter(models.Card.active.is_(True))
        shared = shared.filter(models.Card.active.is_(True))

    views = [_owned_view(card) for card in owned.all()]
    views.extend(_shared_view(share) for share in shared.all())
    views.sort(key=lambda v: (not v.card.active, v.card.sort_order, v.card.name.lower()))
    return views


def get_card_view(db: Session, card_id: int, user_id: int) -> CardView:
    card = db.query(models.Card).filter(models.Card.id == card_id).first()
    if card is not None:
        if card.user_id == user_id:
            return _owned_view(card)
        share = db.query(models.CardShare).filter(
            models.CardShare.card_id == card_id,
            models.CardShare.user_id == user_id,
        ).first()
        if share is not None:
            return _shared_view(share)
    raise NotFoundError("Card not found")


def require_edit(view: CardView) -> CardView:
    if view.is_shared and view.permission not in ("edit", "admin"):
        raise PermissionDeniedError("No permission to change this card")
    return view


def require_owner(view: CardView) -> CardView:
    if view.is_shared:
        raise PermissionDeniedError("Only the card owner can do this")
    return view


def card_debt(view: CardView) -> float:
    """Unpaid amount across every invoice of the card, narrowed to the caller's slice."""
    debt = 0.0
    for invoice in view.card.invoices:
        debt += balances.compute_totals(invoice.items, linked_author_id=view.linked_author_id).unpaid
    return round(debt, 2)


def card_balance(view: CardView) -> dict:
    debt = card_debt(view)
    return {
        "current_debt": debt,
        "available_balance": round(float(view.card.card_limit) - debt, 2),
    }
