"""Order lifecycle engine.

Creates orders without double-booking, moves them through the status
machine with role and payment gates, and reconciles local payment state
with the Midtrans gateway.

Status machine:
    PENDING   -> CONFIRMED, CANCELLED
    CONFIRMED -> ONGOING, CANCELLED
    ONGOING   -> COMPLETED, CANCELLED
    COMPLETED, CANCELLED are terminal.
"""

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from rental.config import RentalSettings, get_settings
from rental.models import (
    ACTIVE_ORDER_STATUSES,
    HOLDING_ORDER_STATUSES,
    Car,
    ErrorCode,
    GatewayStatus,
    GatewayTransaction,
    Order,
    OrderCreate,
    OrderStatus,
    OrderWithCar,
    PaymentCheckResult,
    PaymentDetails,
    PaymentStatus,
    RentalError,
)
from rental.utils.logging import get_logger, log_payment_operation

from .midtrans_service import MidtransServiceError
from .pricing import calculate_total_price

if TYPE_CHECKING:
    from .car_store import CarStore, UserDirectory
    from .midtrans_service import MidtransService
    from .order_store import OrderStore

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.ONGOING, OrderStatus.CANCELLED}),
    OrderStatus.ONGOING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Only the seller may move an order into these statuses
SELLER_ONLY_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.ONGOING, OrderStatus.COMPLETED}
)


def is_valid_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Whether current -> new is an edge of the status machine."""
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def _as_utc(value: dt.datetime) -> dt.datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value


class OrderService:
    """Orchestrates order creation, status changes and payment checks."""

    def __init__(
        self,
        orders: "OrderStore",
        cars: "CarStore",
        users: "UserDirectory",
        gateway: "MidtransService",
        settings: RentalSettings | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            orders: Order store
            cars: Car store
            users: User directory for gateway customer details
            gateway: Midtrans client
            settings: Runtime settings. Defaults to the shared settings.
        """
        self.orders = orders
        self.cars = cars
        self.users = users
        self.gateway = gateway
        self.settings = settings or get_settings()

    def _generate_order_id(self) -> str:
        """Generate a unique order ID like ORD-3F2A9C1B7D4E."""
        return f"ORD-{uuid.uuid4().hex[:12].upper()}"

    # Creation

    def create_order(
        self,
        data: OrderCreate,
        now: dt.datetime | None = None,
    ) -> Order:
        """Place a new PENDING order.

        For online payment methods a gateway transaction is requested after
        the order is stored. A gateway failure leaves the order UNPAID
        without a payment link; it never fails creation.

        Args:
            data: Car, dates, payment method and customer
            now: Current time, for tests

        Returns:
            The stored order, with payment_token/payment_url when available

        Raises:
            RentalError: VALIDATION_ERROR, CAR_NOT_FOUND, CAR_UNAVAILABLE or
                BOOKING_CONFLICT
        """
        now = now or dt.datetime.now(dt.UTC)
        start = _as_utc(data.start_date)
        end = _as_utc(data.end_date)

        if start <= now:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"start_date": "Start date must be in the future"},
                message="Start date must be in the future",
            )
        if end <= start:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"end_date": "End date must be after start date"},
                message="End date must be after start date",
            )

        car = self.cars.get_car(data.car_id)
        if car is None:
            raise RentalError(ErrorCode.CAR_NOT_FOUND, details={"car_id": data.car_id})
        if not car.is_available:
            raise RentalError(ErrorCode.CAR_UNAVAILABLE, details={"car_id": car.car_id})

        conflicts = self.orders.find_overlapping_orders(
            car.car_id, start, end, ACTIVE_ORDER_STATUSES
        )
        if conflicts:
            logger.info(
                "Booking conflict on car %s with orders %s",
                car.car_id,
                [c.order_id for c in conflicts],
            )
            raise RentalError(
                ErrorCode.BOOKING_CONFLICT,
                details={"car_id": car.car_id},
            )

        order = Order(
            order_id=self._generate_order_id(),
            car_id=car.car_id,
            customer_id=data.customer_id,
            seller_id=car.owner_id,
            start_date=start,
            end_date=end,
            total_price=calculate_total_price(car.price, start, end),
            payment_method=data.payment_method,
            created_at=now,
            updated_at=now,
        )

        if not self.orders.insert_order(order, car.booking_version):
            # Another order was placed on this car since we read it
            logger.info("Car %s changed during order insert", car.car_id)
            raise RentalError(
                ErrorCode.BOOKING_CONFLICT,
                details={"car_id": car.car_id},
            )

        logger.info(
            "Order %s created for car %s by %s (total %d)",
            order.order_id,
            car.car_id,
            order.customer_id,
            order.total_price,
        )

        if not order.payment_method.is_online:
            return order

        try:
            txn = self._create_gateway_transaction(order, car)
        except MidtransServiceError as e:
            log_payment_operation(
                logger,
                "create_transaction",
                order_id=order.order_id,
                amount=order.total_price,
                error=str(e),
            )
            updated = self.orders.update_payment_status(
                order.order_id, PaymentStatus.UNPAID
            )
            return updated or order

        updated = self.orders.set_payment_details(
            order.order_id, txn.token, txn.redirect_url
        )
        return updated or order.model_copy(
            update={"payment_token": txn.token, "payment_url": txn.redirect_url}
        )

    def _create_gateway_transaction(
        self, order: Order, car: Car | None
    ) -> GatewayTransaction:
        customer = self.users.get_customer(order.customer_id)
        txn = self.gateway.create_transaction(
            order_id=order.order_id,
            amount=order.total_price,
            customer_name=customer.name if customer else None,
            customer_email=customer.email if customer else None,
            customer_phone=customer.phone_number if customer else None,
            description=car.description if car else None,
        )
        log_payment_operation(
            logger,
            "create_transaction",
            order_id=order.order_id,
            amount=order.total_price,
            status="created",
        )
        return txn

    # Reads

    def _get_order_for_party(self, order_id: str, acting_user_id: str) -> Order:
        order = self.orders.get_order(order_id)
        if order is None:
            raise RentalError(ErrorCode.ORDER_NOT_FOUND, details={"order_id": order_id})
        if not order.is_party(acting_user_id):
            raise RentalError(ErrorCode.FORBIDDEN, details={"order_id": order_id})
        return order

    def _with_car(self, order: Order) -> OrderWithCar:
        return OrderWithCar(**dict(order), car=self.cars.get_car(order.car_id))

    def get_order(self, order_id: str, acting_user_id: str) -> OrderWithCar:
        """Get an order visible to its customer or seller.

        Unpaid online orders are reconciled with the gateway first; a gateway
        failure is logged and the stored order is returned.
        """
        order = self._get_order_for_party(order_id, acting_user_id)

        if order.payment_method.is_online and order.payment_status != PaymentStatus.PAID:
            try:
                status = self.gateway.get_transaction_status(order.order_id)
            except MidtransServiceError as e:
                logger.warning(
                    "Payment reconciliation for %s skipped: %s", order.order_id, e
                )
            else:
                if status.is_successful(allow_missing_fraud_status=False):
                    order = (
                        self.orders.update_payment_status(
                            order.order_id, PaymentStatus.PAID
                        )
                        or order
                    )

        return self._with_car(order)

    def list_customer_orders(self, customer_id: str) -> list[OrderWithCar]:
        """Orders placed by a customer, newest first."""
        return [self._with_car(o) for o in self.orders.list_orders_for_customer(customer_id)]

    def list_seller_orders(self, seller_id: str) -> list[OrderWithCar]:
        """Orders on a seller's cars, newest first."""
        return [self._with_car(o) for o in self.orders.list_orders_for_seller(seller_id)]

    # Status machine

    def update_order_status(
        self,
        order_id: str,
        requested_status: str | OrderStatus,
        acting_user_id: str,
    ) -> OrderWithCar:
        """Move an order to a new status.

        Checks, in order: existence, party membership, status value,
        transition table, role, then the payment gate for CONFIRMED.

        Raises:
            RentalError: ORDER_NOT_FOUND, FORBIDDEN, VALIDATION_ERROR,
                INVALID_TRANSITION, PAYMENT_REQUIRED,
                PAYMENT_VERIFICATION_FAILED or CONCURRENT_UPDATE
        """
        order = self._get_order_for_party(order_id, acting_user_id)

        try:
            new_status = OrderStatus(requested_status)
        except ValueError:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"status": str(requested_status)},
                message="Invalid status",
            ) from None

        if not is_valid_transition(order.status, new_status):
            raise RentalError(
                ErrorCode.INVALID_TRANSITION,
                details={
                    "current_status": order.status.value,
                    "requested_status": new_status.value,
                },
                message=(
                    f"Cannot change order status from {order.status.value} "
                    f"to {new_status.value}"
                ),
            )

        self._check_role(order, new_status, acting_user_id)

        payment_status: PaymentStatus | None = None
        if (
            new_status == OrderStatus.CONFIRMED
            and order.payment_method.is_online
            and order.payment_status != PaymentStatus.PAID
        ):
            payment_status = self._verify_payment_for_confirmation(order)

        # A car conflict alone is retried once with a fresh read of the car
        for attempt in range(2):
            car_available, car_version = self._availability_after(order, new_status)
            if self.orders.apply_transition(
                order,
                new_status,
                payment_status=payment_status,
                car_available=car_available,
                expected_car_version=car_version,
            ):
                break

            current = self.orders.get_order(order.order_id)
            if attempt or current is None or current.status != order.status:
                raise RentalError(
                    ErrorCode.CONCURRENT_UPDATE, details={"order_id": order.order_id}
                )
            logger.info(
                "Car %s changed during transition of %s, retrying",
                order.car_id,
                order.order_id,
            )

        logger.info(
            "Order %s status %s -> %s by %s",
            order.order_id,
            order.status.value,
            new_status.value,
            acting_user_id,
        )

        updated = self.orders.get_order(order.order_id)
        if updated is None:
            raise RentalError(ErrorCode.ORDER_NOT_FOUND, details={"order_id": order_id})
        return self._with_car(updated)

    def _availability_after(
        self, order: Order, new_status: OrderStatus
    ) -> tuple[bool | None, int | None]:
        """Car availability to write with a transition, and the car version it assumes.

        CONFIRMED holds the car. COMPLETED frees it unless another order
        still holds it; the car version is read before the ledger so a
        confirmation landing in between invalidates the decision.
        """
        if new_status not in (OrderStatus.CONFIRMED, OrderStatus.COMPLETED):
            return None, None

        car = self.cars.get_car(order.car_id)
        if car is None:
            raise RentalError(ErrorCode.CAR_NOT_FOUND, details={"car_id": order.car_id})

        if new_status == OrderStatus.CONFIRMED:
            return False, car.booking_version

        others = self.orders.find_orders_in_status(
            order.car_id, HOLDING_ORDER_STATUSES, exclude_order_id=order.order_id
        )
        return not others, car.booking_version

    def _check_role(
        self, order: Order, new_status: OrderStatus, acting_user_id: str
    ) -> None:
        if new_status in SELLER_ONLY_STATUSES and acting_user_id != order.seller_id:
            raise RentalError(
                ErrorCode.FORBIDDEN,
                message="Only the seller can update this order status",
            )
        if (
            new_status == OrderStatus.CANCELLED
            and order.status == OrderStatus.PENDING
            and acting_user_id != order.customer_id
        ):
            raise RentalError(
                ErrorCode.FORBIDDEN,
                message="Only the customer can cancel pending orders",
            )

    def _verify_payment_for_confirmation(self, order: Order) -> PaymentStatus | None:
        """Payment gate for confirming an unpaid online order.

        Returns:
            PaymentStatus.PAID when the gateway reports a successful payment,
            None when the transition may proceed without changing payment status
        """
        try:
            status = self.gateway.get_transaction_status(order.order_id)
        except MidtransServiceError as e:
            if self.settings.strict_payment_verification:
                log_payment_operation(
                    logger, "payment_gate", order_id=order.order_id, error=str(e)
                )
                raise RentalError(
                    ErrorCode.PAYMENT_VERIFICATION_FAILED,
                    details={"order_id": order.order_id},
                    message="Unable to verify payment status. Please try again later.",
                ) from e
            logger.warning(
                "Confirming order %s without payment verification: %s",
                order.order_id,
                e,
            )
            return None

        if status.is_successful():
            log_payment_operation(
                logger, "payment_gate", order_id=order.order_id, status="paid"
            )
            return PaymentStatus.PAID

        if status.is_not_found:
            logger.info(
                "No gateway transaction for order %s, confirming anyway",
                order.order_id,
            )
            return None

        raise RentalError(
            ErrorCode.PAYMENT_REQUIRED,
            details={"transaction_status": status.transaction_status},
        )

    # Payments

    def check_payment_status(
        self, order_id: str, acting_user_id: str
    ) -> PaymentCheckResult:
        """Poll the gateway and record a successful payment.

        Only an explicit fraud_status "accept" counts as paid here.

        Raises:
            RentalError: ORDER_NOT_FOUND, FORBIDDEN, VALIDATION_ERROR for
                offline orders, UPSTREAM_ERROR when the gateway fails
        """
        order = self._get_order_for_party(order_id, acting_user_id)
        if not order.payment_method.is_online:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"payment_method": order.payment_method.value},
                message="This order doesn't use online payment",
            )

        status = self._get_gateway_status(order)

        payment_status = order.payment_status
        if status.is_successful(allow_missing_fraud_status=False):
            payment_status = PaymentStatus.PAID
            if order.payment_status != PaymentStatus.PAID:
                self.orders.update_payment_status(order.order_id, PaymentStatus.PAID)
                log_payment_operation(
                    logger, "check_payment_status", order_id=order.order_id, status="paid"
                )

        return PaymentCheckResult(
            order_id=order.order_id,
            payment_status=payment_status,
            gateway_status=status.raw
            or {"transaction_status": status.transaction_status},
        )

    def get_payment_details(
        self, order_id: str, acting_user_id: str
    ) -> PaymentDetails:
        """Gateway transaction details plus the stored payment URL.

        Raises:
            RentalError: VALIDATION_ERROR when no payment was started,
                UPSTREAM_ERROR (carrying payment_url) when the gateway fails
        """
        order = self._get_order_for_party(order_id, acting_user_id)
        if not order.payment_token:
            details = {"order_id": order.order_id}
            if order.payment_url:
                details["payment_url"] = order.payment_url
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details=details,
                message="No payment token found for this order",
            )

        try:
            status = self.gateway.get_transaction_status(order.order_id)
        except MidtransServiceError as e:
            log_payment_operation(
                logger, "get_payment_details", order_id=order.order_id, error=str(e)
            )
            details = {"order_id": order.order_id}
            if order.payment_url:
                details["payment_url"] = order.payment_url
            raise RentalError(
                ErrorCode.UPSTREAM_ERROR,
                details=details,
                message=(
                    "Unable to fetch payment details, "
                    "please use the payment URL directly"
                ),
            ) from e

        return PaymentDetails(
            order_id=order.order_id,
            payment_status=order.payment_status,
            payment_url=order.payment_url,
            gateway_status=status.raw
            or {"transaction_status": status.transaction_status},
        )

    def retry_payment(self, order_id: str, acting_user_id: str) -> Order:
        """Request a fresh gateway transaction for a pending unpaid order.

        Raises:
            RentalError: FORBIDDEN unless the customer asks, VALIDATION_ERROR
                for offline, paid or non-pending orders, UPSTREAM_ERROR when
                the gateway fails
        """
        order = self._get_order_for_party(order_id, acting_user_id)
        if acting_user_id != order.customer_id:
            raise RentalError(
                ErrorCode.FORBIDDEN,
                message="Only the customer can retry payment",
            )
        if not order.payment_method.is_online:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"payment_method": order.payment_method.value},
                message="This order doesn't use online payment",
            )
        if order.status != OrderStatus.PENDING:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"status": order.status.value},
                message="Payment can only be retried for pending orders",
            )
        if order.payment_status == PaymentStatus.PAID:
            raise RentalError(
                ErrorCode.VALIDATION_ERROR,
                details={"payment_status": order.payment_status.value},
                message="Order is already paid",
            )

        try:
            txn = self._create_gateway_transaction(order, self.cars.get_car(order.car_id))
        except MidtransServiceError as e:
            log_payment_operation(
                logger,
                "retry_payment",
                order_id=order.order_id,
                amount=order.total_price,
                error=str(e),
            )
            raise RentalError(
                ErrorCode.UPSTREAM_ERROR, details={"order_id": order.order_id}
            ) from e

        updated = self.orders.set_payment_details(
            order.order_id, txn.token, txn.redirect_url
        )
        return updated or order.model_copy(
            update={"payment_token": txn.token, "payment_url": txn.redirect_url}
        )

    def _get_gateway_status(self, order: Order) -> GatewayStatus:
        try:
            return self.gateway.get_transaction_status(order.order_id)
        except MidtransServiceError as e:
            log_payment_operation(
                logger, "get_transaction_status", order_id=order.order_id, error=str(e)
            )
            raise RentalError(
                ErrorCode.UPSTREAM_ERROR,
                details={"order_id": order.order_id},
                message="Error checking payment status",
            ) from e
