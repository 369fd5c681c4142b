# agrimarket/services/order_service.py
import math
import uuid
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel
from agrimarket.domain.enums import OrderStatus, TERMINAL_ORDER_STATUSES
from agrimarket.domain.errors import InvalidStateError, NotFoundError
from agrimarket.repos.cart_repo import CartRepo
from agrimarket.repos.order_repo import OrderRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.repos.user_repo import UserRepo
from agrimarket.services.lock_service import LockService, checkout_lock_key
from agrimarket.services.notification_service import NotificationService
from agrimarket.utils.logging import get_logger
from agrimarket.utils.settings import CHECKOUT_LOCK_TTL_SECONDS, DELIVERY_FEE

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def generate_order_id() -> str:
    return "ORD-" + uuid.uuid4().hex[:8].upper()


class OrderService:
    """
    Order domain, kept separate from CartService.
    The cart is read and cleared through CartRepo inside the same
    transaction as the order write and the stock reservation.
    """

    def __init__(self, db: Session, lock_service: LockService):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.user_repo = UserRepo(db)
        self.lock_service = lock_service
        self.notification_service = NotificationService()

    def create_order(
        self,
        user_id: int,
        customer_info: Dict[str, Any],
        delivery_info: Dict[str, Any],
        payment_reference: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: create an order from the user's cart.

        1. Load the cart, an empty cart is rejected
        2. Snapshot every line (name, unit price, quantity, line total)
        3. Reserve stock for every line, all or nothing
        4. Persist the order as PENDING and clear the cart
        5. Queue a notification (async)

        Steps 2-4 commit together or not at all.
        """
        lock_key = checkout_lock_key(user_id)
        owner = uuid.uuid4().hex

        if not self.lock_service.acquire(lock_key, owner, CHECKOUT_LOCK_TTL_SECONDS):
            raise InvalidStateError("Checkout already in progress")

        try:
            order = self._create_order_locked(user_id, customer_info, delivery_info, payment_reference)
        finally:
            self.lock_service.safe_release(lock_key, owner)

        self.notification_service.send_order_notification(user_id, order.id, "order_created")

        return self._to_dict(order)

    def _create_order_locked(self, user_id, customer_info, delivery_info, payment_reference) -> OrderModel:
        try:
            cart = self.cart_repo.get_cart_by_user(user_id, for_update=True)
            cart_items = self.cart_repo.get_cart_items(cart.id) if cart else []

            if not cart_items:
                raise InvalidStateError("Cannot create order with empty cart")

            if not self.user_repo.get_user(user_id):
                raise NotFoundError("User", "id", user_id)

            order_id = generate_order_id()

            # snapshot, ordered by product id so concurrent checkouts lock rows in the same order
            lines = []
            for ci in sorted(cart_items, key=lambda i: i.product_id):
                unit_price = ci.product.price
                lines.append(
                    OrderItemModel(
                        order_id=order_id,
                        product_id=ci.product_id,
                        product_name=ci.product.name,
                        product_price=unit_price,
                        quantity=ci.quantity,
                        total_price=(unit_price * ci.quantity).quantize(CENTS),
                    )
                )

            subtotal = sum((line.total_price for line in lines), Decimal("0.00"))
            delivery_fee = DELIVERY_FEE.quantize(CENTS)

            # stock reservation
            for line in lines:
                if not self.product_repo.reserve_stock(line.product_id, line.quantity):
                    logger.warning(
                        f"Insufficient stock for product {line.product_id} "
                        f"(requested {line.quantity}), order for user {user_id} rejected"
                    )
                    raise InvalidStateError(f"Insufficient stock for {line.product_name}")

            order = OrderModel(
                id=order_id,
                user_id=user_id,
                customer_first_name=customer_info["first_name"],
                customer_last_name=customer_info["last_name"],
                customer_email=customer_info["email"],
                customer_phone=customer_info["phone"],
                delivery_address=delivery_info["address"],
                delivery_city=delivery_info["city"],
                delivery_county=delivery_info["county"],
                delivery_postal_code=delivery_info.get("postal_code"),
                delivery_notes=delivery_info.get("delivery_notes"),
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                total=subtotal + delivery_fee,
                status=OrderStatus.PENDING.value,
                payment_reference=payment_reference,
            )
            self.repo.add_order(order)
            for line in lines:
                self.repo.add_order_item(line)

            self.cart_repo.clear_items(cart.id)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order.id} created for user {user_id}, total {order.total}")
        return self.repo.get_order(order.id)

    def get_order_details(self, order_id: str) -> Dict[str, Any]:
        # TODO: decide with product whether buyers may only read their own orders
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order", "id", order_id)
        return self._to_dict(order)

    def get_user_orders(self, user_id: int, page: int = 0, size: int = 20) -> Dict[str, Any]:
        orders = self.repo.list_user_orders(user_id, offset=page * size, limit=size)
        total = self.repo.count_user_orders(user_id)
        return self._page(orders, page, size, total)

    def get_all_orders(self, page: int = 0, size: int = 20) -> Dict[str, Any]:
        orders = self.repo.list_orders(offset=page * size, limit=size)
        total = self.repo.count_orders()
        return self._page(orders, page, size, total)

    def update_order_status(self, order_id: str, status: OrderStatus) -> Dict[str, Any]:
        """
        Admin use case. Any status may follow any other.
        """
        try:
            order = self.repo.get_order(order_id, for_update=True)
            if not order:
                raise NotFoundError("Order", "id", order_id)

            previous = OrderStatus(order.status)
            if previous in TERMINAL_ORDER_STATUSES and status != previous:
                logger.warning(f"Order {order_id} moved out of terminal status {previous.value} to {status.value}")

            order.status = status.value
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise
        logger.info(f"Order {order_id} status {previous.value} -> {status.value}")

        self.notification_service.send_order_notification(order.user_id, order.id, "order_status_changed")

        return self._to_dict(order)

    def _page(self, orders, page: int, size: int, total: int) -> Dict[str, Any]:
        return {
            "items": [self._to_dict(o) for o in orders],
            "page": page,
            "size": size,
            "total_elements": total,
            "total_pages": math.ceil(total / size) if size else 0,
        }

    def _to_dict(self, order: OrderModel) -> Dict[str, Any]:
        return {
            "id": order.id,
            "user_id": order.user_id,
            "customer_info": {
                "first_name": order.customer_first_name,
                "last_name": order.customer_last_name,
                "email": order.customer_email,
                "phone": order.customer_phone,
            },
            "delivery_info": {
                "address": order.delivery_address,
                "city": order.delivery_city,
                "county": order.delivery_county,
                "postal_code": order.delivery_postal_code,
                "delivery_notes": order.delivery_notes,
            },
            "items": [
                {
                    "product_id": i.product_id,
                    "product_name": i.product_name,
                    "product_price": i.product_price,
                    "quantity": i.quantity,
                    "total_price": i.total_price,
                }
                for i in order.items
            ],
            "subtotal": order.subtotal,
            "delivery_fee": order.delivery_fee,
            "total": order.total,
            "status": order.status,
            "payment_reference": order.payment_reference,
            "order_date": order.order_date,
        }
