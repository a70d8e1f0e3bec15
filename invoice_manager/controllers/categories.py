# controllers/categories.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..dependencies import get_db
from ..schemas import ledger as schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[schemas.Category], summary="List categories")
def list_categories(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """My categories plus the defaults everyone shares."""
    return db.query(models.Category).filter(
        or_(models.Category.user_id == current_user, models.Category.is_default.is_(True))
    ).order_by(models.Category.is_default.desc(), models.Category.name.asc()).all()


@router.post("/", response_model=schemas.Category, summary="Create a category")
def create_category(
    data: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Creating category: {data.name}")
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Category name is required")
    category = models.Category(
        user_id=current_user,
        name=data.name.strip(),
        icon=data.icon,
        color=data.color,
        is_default=False
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", summary="Delete a category")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    """Delete one of my categories. Items keep existing without a category."""
    logger.info(f"Deleting category: {category_id}")
    category = db.query(models.Category).filter(
        models.Category.id == category_id,
        models.Category.user_id == current_user
    ).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    db.query(models.InvoiceItem).filter(models.InvoiceItem.category_id == category_id).update(
        {models.InvoiceItem.category_id: None}, synchronize_session=False
    )
    db.query(models.Subscription).filter(models.Subscription.category_id == category_id).update(
        {models.Subscription.category_id: None}, synchronize_session=False
    )
    db.delete(category)
    db.commit()
    return {"status": "success"}
