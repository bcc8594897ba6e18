# Overview: Exception hierarchy for order creation; routes map each class to a status code.

from __future__ import annotations


class OrderError(Exception):
    """Raised for order creation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class OrderValidationError(OrderError):
    """Malformed request or unknown referenced customer / sales rep (400)."""


class OrderAuthorizationError(OrderError):
    """Caller may not create this order (403)."""


class InsufficientStockError(OrderError):
    """Requested quantity exceeds the stock held in active batches (409)."""
    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Not enough stock available for product ID: {product_id}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available_quantity": available,
            },
        )
        self.product_id = product_id


class ReturnError(OrderError):
    """Returns payload names a batch, product or order that does not exist (400)."""


class OrderProcessingError(OrderError):
    """
    Unexpected store failure while creating an order (500).

    The original exception is chained; its text is for logs only.
    """
