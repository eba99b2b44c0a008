"""Webhook endpoints for Midtrans payment notifications.

Both paths are served by the same handler. They do not require the
x-user-id header: Midtrans calls them directly.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_notification_handler
from api.models.orders import WebhookAck
from rental.models import PaymentNotification
from rental.services.webhook_handler import PaymentNotificationHandler

router = APIRouter(tags=["webhooks"])

_WEBHOOK_RESPONSES = {
    200: {"description": "Notification acknowledged"},
    404: {"description": "No order matches the notification order_id"},
}


@router.post(
    "/orders/payment-webhook",
    summary="Midtrans payment notification",
    response_model=WebhookAck,
    responses=_WEBHOOK_RESPONSES,
)
async def order_payment_webhook(
    notification: PaymentNotification,
    handler: PaymentNotificationHandler = Depends(get_notification_handler),
) -> WebhookAck:
    return WebhookAck(**handler.handle(notification))


@router.post(
    "/payments/notification",
    summary="Midtrans payment notification (payments path)",
    response_model=WebhookAck,
    responses=_WEBHOOK_RESPONSES,
)
async def payment_notification(
    notification: PaymentNotification,
    handler: PaymentNotificationHandler = Depends(get_notification_handler),
) -> WebhookAck:
    return WebhookAck(**handler.handle(notification))
