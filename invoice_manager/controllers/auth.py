# controllers/auth.py
"""Registration and login."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models
from ..auth import create_access_token, hash_password, verify_password
from ..dependencies import get_db, get_current_account
from ..schemas import auth as schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=schemas.Token, summary="Create an account")
def register(data: schemas.RegisterRequest, db: Session = Depends(get_db)):
    """Create the user and the owner author every account starts with."""
    email = data.email.lower()
    if db.query(models.User).filter(models.User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = models.User(name=data.name, email=email, password_hash=hash_password(data.password))
    db.add(user)
    db.flush()  # Generate ID

    db.add(models.Author(user_id=user.id, name=user.name, is_owner=True))
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id}")

    return {"access_token": create_access_token(user.id), "user": user}


@router.post("/login", response_model=schemas.Token, summary="Exchange credentials for a token")
def login(data: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == data.email.lower()).first()
    if not user or not verify_password(data.password, user.password_hash):
        logger.info("Rejected login attempt")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"access_token": create_access_token(user.id), "user": user}


@router.get("/me", response_model=schemas.User, summary="Current user")
def me(user: models.User = Depends(get_current_account)):
    return user
