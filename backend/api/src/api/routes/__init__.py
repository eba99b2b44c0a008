"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- orders: Order placement, listing and status changes
- payments: Midtrans payment details and retries
- webhooks: Midtrans payment notifications

All routers are registered in main.py with /api prefix.
"""

from api.routes.health import router as health_router
from api.routes.orders import router as orders_router
from api.routes.payments import router as payments_router
from api.routes.webhooks import router as webhooks_router

__all__ = [
    "health_router",
    "orders_router",
    "payments_router",
    "webhooks_router",
]
