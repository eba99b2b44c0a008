"""API-specific request/response models.

Domain models (Order, Car, PaymentNotification, etc.) are in rental.models.

Modules:
- common: Validation error wrappers
- orders: Order and payment request/response models
"""

__all__: list[str] = []
