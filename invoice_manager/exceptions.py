# exceptions.py
"""Domain errors raised by the service layer.

Controllers let these propagate; the handlers registered in ``main`` turn
them into JSON responses with the status code declared on each class.
"""


class InvoiceManagerError(Exception):
    """Base class. Carries a human-readable message for the caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InvoiceManagerError):
    """Rejected input: bad day of month, non-positive amount, split mismatch."""

    status_code = 400


class NotFoundError(InvoiceManagerError):
    """Entity missing or not owned by the caller."""

    status_code = 404


class PermissionDeniedError(InvoiceManagerError):
    """Caller can see the entity but may not change it."""

    status_code = 403


class InstallmentError(InvoiceManagerError):
    """Installment generation failed and was rolled back."""

    status_code = 500
