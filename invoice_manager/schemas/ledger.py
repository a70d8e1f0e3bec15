from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import List, Literal, Optional


InvoiceStatus = Literal["open", "closed", "paid", "overdue"]
BillingCycle = Literal["monthly", "semiannual", "annual"]
Permission = Literal["view", "edit", "admin"]


def _check_day(v: Optional[int], label: str) -> Optional[int]:
    if v is not None and not 1 <= v <= 31:
        raise ValueError(f'{label} must be between 1 and 31')
    return v


def _check_positive(v: Optional[float], label: str) -> Optional[float]:
    if v is not None and v <= 0:
        raise ValueError(f'{label} must be greater than zero')
    return v


# ============= SPLITS =============

class AssignmentIn(BaseModel):
    author_id: int
    amount: float
    is_paid: bool = False

    @field_validator('amount')
    @classmethod
    def amount_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError('Amount must be non-negative')
        return v


class Assignment(BaseModel):
    id: int
    author_id: int
    amount: float
    is_paid: bool

    class Config:
        from_attributes = True


# ============= CARDS =============

class CardBase(BaseModel):
    name: str
    card_limit: float = 0.0
    closing_day: int
    due_day: int
    color: Optional[str] = None

    @field_validator('closing_day', 'due_day')
    @classmethod
    def day_in_range(cls, v: int, info) -> int:
        return _check_day(v, info.field_name)

    @field_validator('card_limit')
    @classmethod
    def limit_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError('Limit must be non-negative')
        return v


class CardCreate(CardBase):
    pass


class CardUpdate(BaseModel):
    name: Optional[str] = None
    card_limit: Optional[float] = None
    closing_day: Optional[int] = None
    due_day: Optional[int] = None
    color: Optional[str] = None
    active: Optional[bool] = None

    @field_validator('closing_day', 'due_day')
    @classmethod
    def day_in_range(cls, v: Optional[int], info) -> Optional[int]:
        return _check_day(v, info.field_name)

    @field_validator('card_limit')
    @classmethod
    def limit_must_be_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError('Limit must be non-negative')
        return v


class Card(CardBase):
    id: int
    user_id: int
    color: str
    active: bool
    sort_order: int
    is_shared: bool = False
    owner_name: Optional[str] = None
    author_id_on_owner: Optional[int] = None
    permission: str = "admin"
    current_debt: float = 0.0
    available_balance: float = 0.0

    class Config:
        from_attributes = True


class CardOrder(BaseModel):
    card_ids: List[int]


class CardShareCreate(BaseModel):
    author_id: int
    permission: Permission = "view"


class CardShare(BaseModel):
    id: int
    card_id: int
    user_id: int
    author_id_on_owner: int
    permission: str
    created_at: datetime

    class Config:
        from_attributes = True


# ============= INVOICES =============

class Invoice(BaseModel):
    id: int
    card_id: int
    reference_month: int
    reference_year: int
    closing_date: date
    due_date: date
    total_amount: float
    paid_amount: float
    status: str

    class Config:
        from_attributes = True


class InvoiceCycle(BaseModel):
    card_id: int
    reference_month: int
    reference_year: int
    closing_date: date
    due_date: date


class InvoiceRequest(BaseModel):
    card_id: int
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=9999)


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class Totals(BaseModel):
    total: float
    paid: float
    unpaid: float


class AuthorTotal(BaseModel):
    author_id: int
    name: str
    total: float
    unpaid_total: float
    item_count: int


class MonthlyTotal(BaseModel):
    reference_year: int
    reference_month: int
    total_cards: int
    total_amount: float
    paid_amount: float
    remaining_amount: float


class UpcomingPayment(BaseModel):
    card_id: int
    card_name: str
    card_color: str
    invoice_id: int
    reference_month: int
    reference_year: int
    unpaid_amount: float
    total_unpaid_amount: Optional[float] = None
    is_shared: bool
    due_date: date
    diff_days: int
    is_overdue: bool
    is_due_today: bool
    is_due_soon: bool


# ============= ITEMS =============

class Item(BaseModel):
    id: int
    invoice_id: int
    description: str
    amount: float
    category_id: Optional[int] = None
    author_id: int
    is_paid: bool
    is_installment: bool
    installment_number: Optional[int] = None
    total_installments: Optional[int] = None
    installment_group_id: Optional[str] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    assignments: List[Assignment] = []

    class Config:
        from_attributes = True


class ItemView(Item):
    """Item as shown in an invoice view, with the amount narrowed to the view's author."""
    display_amount: float
    payment_state: Literal["paid", "partial", "unpaid"]
    author_name: str


class InvoiceView(BaseModel):
    card_id: int
    reference_month: int
    reference_year: int
    closing_date: date
    due_date: date
    is_current: bool
    invoice: Optional[Invoice] = None
    items: List[ItemView] = []
    totals: Totals
    author_totals: List[AuthorTotal] = []


class ItemCreate(BaseModel):
    card_id: int
    invoice_id: Optional[int] = None
    description: str
    amount: float
    author_id: int
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    is_paid: bool = False
    assignments: List[AssignmentIn] = []

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: float) -> float:
        return _check_positive(v, 'Amount')


class InstallmentCreate(BaseModel):
    card_id: int
    description: str
    total_amount: float
    total_installments: int = Field(ge=1, le=120)
    author_id: int
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    start_month: Optional[int] = Field(default=None, ge=1, le=12)
    start_year: Optional[int] = None
    current_installment: int = Field(default=1, ge=1)
    notes: Optional[str] = None
    assignments: List[AssignmentIn] = []

    @field_validator('total_amount')
    @classmethod
    def amount_must_be_positive(cls, v: float) -> float:
        return _check_positive(v, 'Total amount')


class ItemUpdate(BaseModel):
    description: Optional[str] = None
    amount: Optional[float] = None
    author_id: Optional[int] = None
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    assignments: Optional[List[AssignmentIn]] = None

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: Optional[float]) -> Optional[float]:
        return _check_positive(v, 'Amount')


class PaidStatus(BaseModel):
    is_paid: bool = True


class AssignmentPaidStatus(BaseModel):
    author_id: int
    is_paid: bool = True


class ItemSelection(BaseModel):
    item_ids: List[int]
    is_paid: bool = True


class SelectionTotal(BaseModel):
    count: int
    total: float


# ============= AUTHORS & CATEGORIES =============

class AuthorCreate(BaseModel):
    name: str


class AuthorUpdate(BaseModel):
    name: str


class AuthorLink(BaseModel):
    email: EmailStr


class Author(BaseModel):
    id: int
    user_id: int
    name: str
    is_owner: bool
    linked_user_id: Optional[int] = None

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None


class Category(BaseModel):
    id: int
    user_id: Optional[int] = None
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    is_default: bool

    class Config:
        from_attributes = True


# ============= SUBSCRIPTIONS =============

class SubscriptionAssignmentIn(BaseModel):
    author_id: int
    amount: float


class SubscriptionAssignment(SubscriptionAssignmentIn):
    id: int

    class Config:
        from_attributes = True


class SubscriptionCreate(BaseModel):
    card_id: int
    author_id: int
    category_id: Optional[int] = None
    description: str
    amount: float
    billing_day: int
    billing_cycle: BillingCycle = "monthly"
    next_billing_date: Optional[date] = None
    assignments: List[SubscriptionAssignmentIn] = []

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: float) -> float:
        return _check_positive(v, 'Amount')

    @field_validator('billing_day')
    @classmethod
    def day_in_range(cls, v: int) -> int:
        return _check_day(v, 'billing_day')


class SubscriptionUpdate(BaseModel):
    card_id: Optional[int] = None
    author_id: Optional[int] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    billing_day: Optional[int] = None
    billing_cycle: Optional[BillingCycle] = None
    next_billing_date: Optional[date] = None
    active: Optional[bool] = None
    assignments: Optional[List[SubscriptionAssignmentIn]] = None

    @field_validator('amount')
    @classmethod
    def amount_must_be_positive(cls, v: Optional[float]) -> Optional[float]:
        return _check_positive(v, 'Amount')

    @field_validator('billing_day')
    @classmethod
    def day_in_range(cls, v: Optional[int]) -> Optional[int]:
        return _check_day(v, 'billing_day')


class Subscription(BaseModel):
    id: int
    card_id: int
    author_id: int
    category_id: Optional[int] = None
    description: str
    amount: float
    billing_day: int
    billing_cycle: str
    next_billing_date: date
    active: bool
    paused: bool
    monthly_equivalent: float = 0.0
    assignments: List[SubscriptionAssignment] = []

    class Config:
        from_attributes = True


class SubscriptionSummary(BaseModel):
    active_count: int
    monthly_total: float
    next_renewal_id: Optional[int] = None
    next_billing_date: Optional[date] = None
    days_until_renewal: Optional[int] = None
