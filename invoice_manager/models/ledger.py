# models/ledger.py
"""SQLAlchemy models for cards, invoices and the people who spend on them."""

from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from ..database import Base


def utc_now():
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


INVOICE_STATUSES = ("open", "closed", "paid", "overdue")


class User(Base):
    """Account holder. Everything else is scoped to a user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    authors = relationship(
        "Author", back_populates="user", cascade="all, delete-orphan",
        foreign_keys="Author.user_id",
    )
    cards = relationship("Card", back_populates="user", cascade="all, delete-orphan")


class Author(Base):
    """Person responsible for a charge: the account owner or a participant."""
    __tablename__ = "authors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_owner = Column(Boolean, nullable=False, default=False)
    linked_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # other account
    created_at = Column(DateTime(timezone=True), default=utc_now)

    user = relationship("User", back_populates="authors", foreign_keys=[user_id])
    linked_user = relationship("User", foreign_keys=[linked_user_id])


class Category(Base):
    """Spending label. Defaults have no owner and are visible to everyone."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class Card(Base):
    """Credit card and its billing cycle configuration."""
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    card_limit = Column(Float, nullable=False, default=0.0)
    closing_day = Column(Integer, nullable=False)  # 1-31, clamped per month
    due_day = Column(Integer, nullable=False)  # 1-31, clamped per month
    color = Column(String, nullable=False, default="#6366f1")
    active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    user = relationship("User", back_populates="cards")
    invoices = relationship("Invoice", back_populates="card", cascade="all, delete-orphan")
    shares = relationship("CardShare", back_populates="card", cascade="all, delete-orphan")


class CardShare(Base):
    """Grants another account access to a card, pinned to one author on the owner's side."""
    __tablename__ = "card_shares"
    __table_args__ = (UniqueConstraint("card_id", "user_id", name="uq_card_shares_card_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    author_id_on_owner = Column(Integer, ForeignKey("authors.id"), nullable=False)
    permission = Column(String, nullable=False, default="view")  # view, edit, admin
    created_at = Column(DateTime(timezone=True), default=utc_now)

    card = relationship("Card", back_populates="shares")
    user = relationship("User")
    author = relationship("Author")


class Invoice(Base):
    """Monthly statement of a card. One per (card, reference month, reference year)."""
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("card_id", "reference_month", "reference_year", name="uq_invoices_card_month"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=False, index=True)
    reference_month = Column(Integer, nullable=False)
    reference_year = Column(Integer, nullable=False)
    closing_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)
    paid_amount = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False, default="open")  # open, closed, paid, overdue
    created_at = Column(DateTime(timezone=True), default=utc_now)

    card = relationship("Card", back_populates="invoices")
    items = relationship(
        "InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )


class InvoiceItem(Base):
    """Single charge on an invoice, possibly one installment of a longer sequence."""
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False, index=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    is_installment = Column(Boolean, nullable=False, default=False)
    installment_number = Column(Integer, nullable=True)
    total_installments = Column(Integer, nullable=True)
    installment_group_id = Column(String(36), nullable=True, index=True)
    purchase_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    invoice = relationship("Invoice", back_populates="items")
    author = relationship("Author")
    category = relationship("Category")
    assignments = relationship(
        "ItemAssignment", back_populates="item", cascade="all, delete-orphan",
        order_by="ItemAssignment.id",
    )


class ItemAssignment(Base):
    """Slice of an item's cost owed by one author."""
    __tablename__ = "item_assignments"
    __table_args__ = (UniqueConstraint("item_id", "author_id", name="uq_item_assignments_item_author"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("invoice_items.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False)
    amount = Column(Float, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)

    item = relationship("InvoiceItem", back_populates="assignments")
    author = relationship("Author")


class Subscription(Base):
    """Recurring charge template materialized into invoice items on each billing date."""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    card_id = Column(Integer, ForeignKey("cards.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    billing_day = Column(Integer, nullable=False)
    billing_cycle = Column(String, nullable=False, default="monthly")  # monthly, semiannual, annual
    next_billing_date = Column(Date, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    paused = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    card = relationship("Card")
    assignments = relationship(
        "SubscriptionAssignment", back_populates="subscription", cascade="all, delete-orphan",
        order_by="SubscriptionAssignment.id",
    )


class SubscriptionAssignment(Base):
    __tablename__ = "subscription_assignments"
    __table_args__ = (
        UniqueConstraint("subscription_id", "author_id", name="uq_subscription_assignments_sub_author"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False)
    amount = Column(Float, nullable=False)

    subscription = relationship("Subscription", back_populates="assignments")
