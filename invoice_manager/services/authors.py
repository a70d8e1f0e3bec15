# services/authors.py
"""Authors: the people charges are attributed to."""

import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .. import models
from ..exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def create_author(db: Session, user_id: int, name: str, is_owner: bool = False) -> models.Author:
    """Insert and commit an author, retrying once when the connection was reset.

    Unlike the other services this commits itself, so the retry starts from a
    clean transaction.
    """
    if not name or not name.strip():
        raise ValidationError("Author name is required")

    for attempt in (1, 2):
        try:
            author = models.Author(user_id=user_id, name=name.strip(), is_owner=is_owner)
            db.add(author)
            db.commit()
            db.refresh(author)
            return author
        except OperationalError:
            db.rollback()
            if attempt == 2:
                raise
            logger.warning(f"Connection reset while creating author '{name}', retrying")


def get_owner_author(db: Session, user_id: int) -> models.Author:
    author = db.query(models.Author).filter(
        models.Author.user_id == user_id,
        models.Author.is_owner.is_(True),
    ).first()
    if not author:
        raise NotFoundError("Owner author not found")
    return author


def delete_author(db: Session, author: models.Author) -> None:
    if author.is_owner:
        raise ValidationError("The account owner cannot be deleted")
    in_use = db.query(models.InvoiceItem).filter(models.InvoiceItem.author_id == author.id).first()
    in_split = db.query(models.ItemAssignment).filter(models.ItemAssignment.author_id == author.id).first()
    if in_use or in_split:
        raise ValidationError("Author has items and cannot be deleted")

    billed = db.query(models.Subscription).filter(models.Subscription.author_id == author.id).first()
    billed_split = db.query(models.SubscriptionAssignment).filter(
        models.SubscriptionAssignment.author_id == author.id
    ).first()
    if billed or billed_split:
        raise ValidationError("Author has subscriptions and cannot be deleted")

    shared = db.query(models.CardShare).filter(models.CardShare.author_id_on_owner == author.id).first()
    if shared:
        raise ValidationError("Author has shared cards; unlink it first")
    db.delete(author)


def link_author(db: Session, author: models.Author, email: str) -> models.Author:
    """Point an author at another account so cards can be shared with it."""
    if author.is_owner:
        raise ValidationError("The account owner cannot be linked")
    user = db.query(models.User).filter(models.User.email == email.lower()).first()
    if not user:
        raise NotFoundError("No account with that email")
    if user.id == author.user_id:
        raise ValidationError("Cannot link an author to your own account")
    author.linked_user_id = user.id
    return author


def unlink_author(db: Session, author: models.Author) -> models.Author:
    """Drop the account link and every share that relied on it."""
    db.query(models.CardShare).filter(models.CardShare.author_id_on_owner == author.id).delete()
    author.linked_user_id = None
    return author
