# services/categories.py
"""Default categories shared by every account."""

import logging

from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)

SUBSCRIPTIONS_CATEGORY = "Subscriptions"

DEFAULT_CATEGORIES = [
    {"name": "Food", "icon": "utensils", "color": "#f97316"},
    {"name": "Transport", "icon": "car", "color": "#3b82f6"},
    {"name": "Health", "icon": "heart-pulse", "color": "#ef4444"},
    {"name": "Shopping", "icon": "shopping-bag", "color": "#a855f7"},
    {"name": "Home", "icon": "home", "color": "#22c55e"},
    {"name": "Entertainment", "icon": "film", "color": "#eab308"},
    {"name": SUBSCRIPTIONS_CATEGORY, "icon": "repeat", "color": "#8b5cf6"},
]


def seed_default_categories(db: Session) -> int:
    """Insert missing default categories. Returns how many were added."""
    existing = {
        c.name for c in db.query(models.Category).filter(models.Category.is_default.is_(True)).all()
    }
    added = 0
    for data in DEFAULT_CATEGORIES:
        if data["name"] in existing:
            continue
        db.add(models.Category(user_id=None, is_default=True, **data))
        added += 1
    if added:
        db.commit()
        logger.info(f"Seeded {added} default categories")
    return added


def get_subscriptions_category(db: Session) -> models.Category:
    category = db.query(models.Category).filter(
        models.Category.is_default.is_(True),
        models.Category.name == SUBSCRIPTIONS_CATEGORY,
    ).first()
    if category is None:
        category = models.Category(
            user_id=None, is_default=True, name=SUBSCRIPTIONS_CATEGORY, icon="repeat", color="#8b5cf6"
        )
        db.add(category)
        db.flush()
    return category
