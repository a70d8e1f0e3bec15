# controllers/subscriptions.py
"""Recurring charges and the endpoint a scheduler calls to bill them."""

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..auth import get_current_user
from ..dependencies import get_db, get_today
from ..schemas import ledger as schemas
from ..services import cards as card_service
from ..services import subscriptions as service
from ..services.items import check_author, check_category, validate_split

logger = logging.getLogger(__name__)

router = APIRouter()


def subscription_to_schema(subscription: models.Subscription) -> schemas.Subscription:
    data = schemas.Subscription.model_validate(subscription)
    data.monthly_equivalent = round(
        service.to_monthly_equivalent(subscription.amount, subscription.billing_cycle), 2
    )
    return data


def load_subscription(db: Session, subscription_id: int, user_id: int) -> models.Subscription:
    subscription = db.query(models.Subscription).filter(
        models.Subscription.id == subscription_id,
        models.Subscription.user_id == user_id
    ).first()
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


@router.get("/", response_model=List[schemas.Subscription], summary="List subscriptions")
def list_subscriptions(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    subscriptions = db.query(models.Subscription).filter(
        models.Subscription.user_id == current_user
    ).order_by(models.Subscription.next_billing_date.asc()).all()
    return [subscription_to_schema(s) for s in subscriptions]


@router.get("/summary", response_model=schemas.SubscriptionSummary, summary="Subscription summary")
def summary(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Monthly equivalent of every running subscription and the nearest renewal."""
    subscriptions = db.query(models.Subscription).filter(
        models.Subscription.user_id == current_user
    ).all()
    result = service.summarize(subscriptions, today)
    return schemas.SubscriptionSummary(
        active_count=result.active_count,
        monthly_total=result.monthly_total,
        next_renewal_id=result.next_renewal.id if result.next_renewal else None,
        next_billing_date=result.next_renewal.next_billing_date if result.next_renewal else None,
        days_until_renewal=result.days_until_renewal,
    )


@router.post("/run", response_model=List[schemas.Item], summary="Bill due subscriptions")
def run_due(
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Turn every subscription whose billing date has arrived into invoice items."""
    created = service.materialize_due_subscriptions(db, today, user_id=current_user)
    db.commit()
    for item in created:
        db.refresh(item)
    logger.info(f"Billed {len(created)} subscription charge(s) for user {current_user}")
    return created


@router.post("/", response_model=schemas.Subscription, summary="Create a subscription")
def create_subscription(
    data: schemas.SubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    logger.info(f"Creating subscription: {data.description} (${data.amount} {data.billing_cycle})")
    view = card_service.require_owner(card_service.get_card_view(db, data.card_id, current_user))
    check_author(db, view.card, data.author_id)
    check_category(db, view.card, data.category_id)

    subscription = models.Subscription(
        user_id=current_user,
        card_id=view.card.id,
        author_id=data.author_id,
        category_id=data.category_id,
        description=data.description.strip(),
        amount=data.amount,
        billing_day=data.billing_day,
        billing_cycle=data.billing_cycle,
        next_billing_date=data.next_billing_date or service.first_billing_date(data.billing_day, today),
    )
    service.set_assignments(db, view.card, subscription, data.assignments)
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription_to_schema(subscription)


@router.put("/{subscription_id}", response_model=schemas.Subscription, summary="Update a subscription")
def update_subscription(
    subscription_id: int,
    data: schemas.SubscriptionUpdate,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Updating subscription {subscription_id}")
    subscription = load_subscription(db, subscription_id, current_user)
    changes = data.model_dump(exclude_unset=True, exclude={"assignments"})

    if changes.get("card_id") is not None:
        card_service.require_owner(card_service.get_card_view(db, changes["card_id"], current_user))
    for field, value in changes.items():
        if value is not None or field == "category_id":
            setattr(subscription, field, value)

    db.flush()
    db.refresh(subscription)
    card = subscription.card
    check_author(db, card, subscription.author_id)
    check_category(db, card, subscription.category_id)
    if data.assignments is not None:
        service.set_assignments(db, card, subscription, data.assignments)
    elif "amount" in changes:
        validate_split(subscription.amount, subscription.assignments)

    db.commit()
    db.refresh(subscription)
    return subscription_to_schema(subscription)


@router.post("/{subscription_id}/pause", response_model=schemas.Subscription, summary="Pause a subscription")
def pause_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    subscription = load_subscription(db, subscription_id, current_user)
    subscription.paused = True
    db.commit()
    db.refresh(subscription)
    return subscription_to_schema(subscription)


@router.post("/{subscription_id}/resume", response_model=schemas.Subscription, summary="Resume a subscription")
def resume_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user),
    today: date = Depends(get_today)
):
    """Resume billing. Dates missed while paused are skipped, not charged."""
    subscription = load_subscription(db, subscription_id, current_user)
    subscription.paused = False
    if subscription.next_billing_date < today:
        subscription.next_billing_date = service.first_billing_date(subscription.billing_day, today)
    db.commit()
    db.refresh(subscription)
    return subscription_to_schema(subscription)


@router.delete("/{subscription_id}", summary="Delete a subscription")
def delete_subscription(
    subscription_id: int,
    db: Session = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    logger.info(f"Deleting subscription: {subscription_id}")
    db.delete(load_subscription(db, subscription_id, current_user))
    db.commit()
    return {"status": "success"}
