from .ledger import (
    INVOICE_STATUSES,
    Author,
    Card,
    CardShare,
    Category,
    Invoice,
    InvoiceItem,
    ItemAssignment,
    Subscription,
    SubscriptionAssignment,
    User,
)
