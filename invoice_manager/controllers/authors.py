# controllers/authors.py
"""People that charges are attributed to."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..dependencies import get_db
from ..schemas import ledger as schemas
from ..services import authors as service

logger = logging.getLogger(__name__)

router = APIRouter()


def load_author(db: Session, author_id: int, user_id: int) -> models.Author:
    author = db.query(models.Author).filter(
        models.Author.id == author_id,
        models.Author.user_id == user_id
    ).first()
    if not author:
        raise HTTPException(status_code=404, detail="Author not found")
    return author


@router.get("/", response_model=List[schemas.Author], summary="List authors")
def list_authors(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Owner first, then everyone else by name."""
    return db.query(models.Author).filter(models.Author.user_id == current_user).order_by(
        models.Author.is_owner.desc(), models.Author.name.asc()
    ).all()


@router.post("/", response_model=schemas.Author, summary="Create an author")
def create_author(
    data: schemas.AuthorCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Creating author: {data.name}")
    return service.create_author(db, current_user, data.name)


@router.put("/{author_id}", response_model=schemas.Author, summary="Rename an author")
def rename_author(
    author_id: int,
    data: schemas.AuthorUpdate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    author = load_author(db, author_id, current_user)
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Author name is required")
    author.name = data.name.strip()
    db.commit()
    db.refresh(author)
    return author


@router.delete("/{author_id}", summary="Delete an author")
def delete_author(
    author_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Deleting author: {author_id}")
    service.delete_author(db, load_author(db, author_id, current_user))
    db.commit()
    return {"status": "success"}


@router.post("/{author_id}/link", response_model=schemas.Author, summary="Link an author to an account")
def link_author(
    author_id: int,
    data: schemas.AuthorLink,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Link the author to the account registered with ``email`` so cards can be shared with it."""
    author = service.link_author(db, load_author(db, author_id, current_user), data.email)
    db.commit()
    db.refresh(author)
    return author


@router.delete("/{author_id}/link", response_model=schemas.Author, summary="Unlink an author")
def unlink_author(
    author_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    author = service.unlink_author(db, load_author(db, author_id, current_user))
    db.commit()
    db.refresh(author)
    return author
