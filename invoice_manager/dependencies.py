# invoice_manager/dependencies.py
"""Centralized dependencies for FastAPI application."""

from datetime import date

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from .database import SessionLocal
from .auth import get_current_user
from . import models


def get_db():
    """Database session dependency.

    Yields a database session and ensures it's closed after use.
    Usage: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_today() -> date:
    """Current date; overridden in tests to pin the calendar."""
    return date.today()


def get_current_account(
    current_user: int = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> models.User:
    """
    Loads the authenticated user's row.
    Tokens outliving their account are rejected.
    """
    user = db.query(models.User).filter(models.User.id == current_user).first()
    if not user:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    return user
