"""Order endpoints.

Provides REST endpoints for:
- Placing an order (customer)
- Listing orders as customer or seller
- Getting an order
- Changing order status (role-gated state machine)
- Checking payment status with Midtrans

All endpoints require the x-user-id header set by the upstream authenticator.
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from api.dependencies import get_current_user_id, get_order_service
from api.models.orders import (
    OrderCreateRequest,
    OrderMutationResponse,
    OrderResponse,
    OrderStatusUpdateRequest,
    PaymentStatusResponse,
)
from rental.models import OrderCreate
from rental.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    summary="Place an order",
    description="""
Place a rental order for a car.

**Notes:**
- Start date must be in the future and before the end date
- Total price is the daily price times the number of days, partial days round up
- Online payment methods return a Midtrans payment link when available
""",
    response_model=OrderMutationResponse,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid dates or request body"},
        404: {"description": "Car not found"},
        409: {"description": "Car unavailable or already booked for these dates"},
    },
)
async def create_order(
    body: OrderCreateRequest,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> OrderMutationResponse:
    order = orders.create_order(
        OrderCreate(
            car_id=body.car_id,
            start_date=body.start_date,
            end_date=body.end_date,
            payment_method=body.payment_method,
            customer_id=user_id,
        )
    )
    return OrderMutationResponse(
        message="Order created successfully",
        order=OrderResponse.model_validate(order.model_dump()),
    )


@router.get(
    "/customer",
    summary="List my orders as customer",
    response_model=list[OrderResponse],
)
async def list_customer_orders(
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return [
        OrderResponse.model_validate(o.model_dump())
        for o in orders.list_customer_orders(user_id)
    ]


@router.get(
    "/seller",
    summary="List orders on my cars",
    response_model=list[OrderResponse],
)
async def list_seller_orders(
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> list[OrderResponse]:
    return [
        OrderResponse.model_validate(o.model_dump())
        for o in orders.list_seller_orders(user_id)
    ]


@router.get(
    "/{order_id}",
    summary="Get an order",
    description="""
Get an order visible to its customer or seller.

Unpaid online orders are checked against Midtrans first.
""",
    response_model=OrderResponse,
    responses={
        403: {"description": "Not a party to this order"},
        404: {"description": "Order not found"},
    },
)
async def get_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return OrderResponse.model_validate(orders.get_order(order_id, user_id).model_dump())


@router.put(
    "/{order_id}/status",
    summary="Change order status",
    description="""
Move an order through PENDING → CONFIRMED → ONGOING → COMPLETED, or cancel it.

**Rules:**
- Only the seller can confirm, start or complete
- Only the customer can cancel a pending order; either party can cancel later
- Confirming an unpaid online order checks payment with Midtrans first
""",
    response_model=OrderMutationResponse,
    responses={
        400: {"description": "Invalid status or transition"},
        402: {"description": "Payment not completed"},
        403: {"description": "Not allowed for this user"},
        404: {"description": "Order not found"},
        409: {"description": "Order changed concurrently"},
    },
)
async def update_order_status(
    order_id: str,
    body: OrderStatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> OrderMutationResponse:
    order = orders.update_order_status(order_id, body.status, user_id)
    return OrderMutationResponse(
        message="Order status updated successfully",
        order=OrderResponse.model_validate(order.model_dump()),
    )


@router.get(
    "/{order_id}/payment-status",
    summary="Check payment status",
    response_model=PaymentStatusResponse,
    responses={
        400: {"description": "Order does not use online payment"},
        502: {"description": "Midtrans request failed"},
    },
)
async def check_payment_status(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    orders: OrderService = Depends(get_order_service),
) -> PaymentStatusResponse:
    result = orders.check_payment_status(order_id, user_id)
    return PaymentStatusResponse(
        order_id=result.order_id,
        payment_status=result.payment_status,
        gateway_status=result.gateway_status,
    )
