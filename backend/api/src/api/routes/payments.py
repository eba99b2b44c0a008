"""Payment endpoints.

Provides REST endpoints for:
- Getting Midtrans transaction details for an order (either party)
- Retrying payment with a fresh Midtrans link (customer)
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_current_user_id, get_order_service
from api.models.orders import PaymentDetailsResponse, PaymentRetryResponse
from rental.services.order_service import OrderService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get(
    "/{order_id}/details",
    summary="Get payment details",
    description="""
Get the Midtrans transaction details for an order.

**Notes:**
- Fails with 400 when no payment was started for the order
- When Midtrans is unreachable the error details carry payment_url
""",
    response_model=PaymentDetailsResponse,
    responses={
        400: {"description": "No payment token for this order"},
        403: {"description": "Not a party to this order"},
        404: {"description": "Order not found"},
        502: {"description": "Midtrans request failed"},
    },
)
async def get_payment_details(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> PaymentDetailsResponse:
    details = orders.get_payment_details(order_id, user_id)
    return PaymentDetailsResponse.model_validate(details.model_dump())


@router.post(
    "/{order_id}/retry",
    summary="Retry payment",
    description="""
Create a fresh Midtrans payment link for a pending, unpaid online order.

**Only the customer of the order can retry.**
""",
    response_model=PaymentRetryResponse,
    responses={
        400: {"description": "Order cannot be paid"},
        403: {"description": "Not the customer of this order"},
        404: {"description": "Order not found"},
        502: {"description": "Midtrans request failed"},
    },
)
async def retry_payment(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> PaymentRetryResponse:
    order = orders.retry_payment(order_id, user_id)
    return PaymentRetryResponse(
        order_id=order.order_id,
        payment_token=order.payment_token,
        payment_url=order.payment_url,
    )
