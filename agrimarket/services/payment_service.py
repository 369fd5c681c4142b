# agrimarket/services/payment_service.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.payment import PaymentModel
from agrimarket.domain.enums import OrderStatus, PaymentMethod, PaymentStatus
from agrimarket.domain.errors import ConflictError, InvalidStateError, NotFoundError
from agrimarket.repos.order_repo import OrderRepo
from agrimarket.repos.payment_repo import PaymentRepo
from agrimarket.repos.user_repo import UserRepo
from agrimarket.services.lock_service import LockService, payment_lock_key
from agrimarket.services.notification_service import NotificationService
from agrimarket.services.payment_gateway import PaymentGateway
from agrimarket.utils.logging import get_logger
from agrimarket.utils.settings import PAYMENT_LOCK_TTL_SECONDS

logger = get_logger(__name__)


class PaymentService:
    def __init__(self, db: Session, gateway: PaymentGateway, lock_service: LockService):
        self.repo = PaymentRepo(db)
        self.order_repo = OrderRepo(db)
        self.user_repo = UserRepo(db)
        self.gateway = gateway
        self.lock_service = lock_service
        self.notification_service = NotificationService()

    def process_payment(
        self,
        user_id: int,
        order_id: str,
        method: PaymentMethod,
        phone_number: str | None = None,
        account_reference: str | None = None,
        transaction_desc: str | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: pay for an order.

        One payment row per order. A FAILED attempt (or a PENDING one the
        provider never saw) is reused by the next attempt, a paid order or
        one with a push still awaiting its callback can't be paid again.

        1. Reserve the attempt: payment row committed as PENDING
        2. Call the provider, no transaction open
        3. Record the result, payment and order status committed together
        """
        if not self.user_repo.get_user(user_id):
            raise NotFoundError("User", "id", user_id)

        lock_key = payment_lock_key(order_id)
        owner = uuid.uuid4().hex
        if not self.lock_service.acquire(lock_key, owner, PAYMENT_LOCK_TTL_SECONDS):
            raise InvalidStateError("Payment for this order is already in progress")

        try:
            amount = self._reserve_attempt(user_id, order_id, method)

            result = self.gateway.settle(
                method,
                amount,
                order_id,
                phone_number=phone_number,
                account_reference=account_reference,
                description=transaction_desc,
            )

            payment = self._record_settlement(order_id, result)
        finally:
            self.lock_service.safe_release(lock_key, owner)

        logger.info(f"Payment {payment.id} for order {order_id} via {method.value}: {payment.status}")

        if payment.status == PaymentStatus.SUCCESS.value:
            self.notification_service.send_order_notification(user_id, order_id, "payment_confirmed")

        return self._to_dict(payment)

    def _reserve_attempt(self, user_id: int, order_id: str, method: PaymentMethod) -> Decimal:
        try:
            order = self.order_repo.get_order(order_id, for_update=True)
            if not order:
                raise NotFoundError("Order", "id", order_id)

            payment = self.repo.get_by_order(order_id, for_update=True)
            if payment and payment.status == PaymentStatus.SUCCESS.value:
                raise InvalidStateError(f"Order {order_id} is already paid")
            if payment and payment.status == PaymentStatus.PENDING.value and payment.checkout_request_id:
                # the buyer may still approve the first push, its callback must find the row
                raise InvalidStateError("Payment already in progress")
            if order.status != OrderStatus.PENDING.value:
                raise InvalidStateError(f"Order {order_id} is {order.status} and can't be paid")

            if payment is None:
                payment = PaymentModel(order_id=order.id, user_id=user_id)
            payment.amount = order.total
            payment.payment_method = method.value
            payment.status = PaymentStatus.PENDING.value
            payment.payment_date = datetime.now(timezone.utc)
            # a previous attempt's provider references don't carry over
            payment.transaction_id = None
            payment.receipt_number = None
            payment.merchant_request_id = None
            payment.checkout_request_id = None
            self.repo.add_payment(payment)

            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Concurrent payment insert for order {order_id}: {e.orig}")
            raise ConflictError(f"Payment for order {order_id} was created concurrently") from e
        except Exception:
            self.repo.rollback()
            raise

        return order.total

    def _record_settlement(self, order_id: str, result: Dict[str, Any]) -> PaymentModel:
        try:
            # order before payment, same lock order as the callback
            order = self.order_repo.get_order(order_id, for_update=True)
            payment = self.repo.get_by_order(order_id, for_update=True)
            if not payment:
                raise NotFoundError("Payment", "orderId", order_id)

            self._apply_settlement(payment, order, result)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return payment

    def get_payment_status(self, transaction_id: str) -> Dict[str, Any]:
        # polled by clients while a push payment is still PENDING
        payment = self.repo.get_by_transaction_id(transaction_id)
        if not payment:
            raise NotFoundError("Payment", "transactionId", transaction_id)
        return self._to_dict(payment)

    def handle_mpesa_callback(
        self,
        checkout_request_id: str,
        result_code: int,
        result_desc: str | None = None,
        receipt_number: str | None = None,
    ) -> Dict[str, Any]:
        """
        Out-of-band M-Pesa result. Idempotent: a payment that already left
        PENDING is returned unchanged.
        """
        try:
            found = self.repo.get_by_checkout_request_id(checkout_request_id)
            if not found:
                raise NotFoundError("Payment", "checkoutRequestId", checkout_request_id)

            order = self.order_repo.get_order(found.order_id, for_update=True)
            payment = self.repo.get_by_checkout_request_id(checkout_request_id, for_update=True)

            if payment.status != PaymentStatus.PENDING.value:
                logger.info(f"Duplicate M-Pesa callback for {checkout_request_id}, payment already {payment.status}")
                self.repo.rollback()
                return self._to_dict(payment)

            if result_code == 0:
                result = {"status": PaymentStatus.SUCCESS, "receipt_number": receipt_number}
            else:
                logger.warning(f"M-Pesa payment {checkout_request_id} failed: {result_desc}")
                result = {"status": PaymentStatus.FAILED}
            self._apply_settlement(payment, order, result)

            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        if payment.status == PaymentStatus.SUCCESS.value:
            self.notification_service.send_order_notification(payment.user_id, payment.order_id, "payment_confirmed")

        return self._to_dict(payment)

    def _apply_settlement(self, payment: PaymentModel, order: OrderModel, result: Dict[str, Any]) -> None:
        status = result["status"]
        payment.status = status.value

        for field in ("transaction_id", "receipt_number", "merchant_request_id", "checkout_request_id"):
            if result.get(field):
                setattr(payment, field, result[field])

        if status != PaymentStatus.SUCCESS:
            return
        if order.status == OrderStatus.PENDING.value:
            order.status = OrderStatus.CONFIRMED.value
        else:
            # paid after the order moved on, e.g. cancelled by an admin
            logger.warning(
                f"Payment {payment.id} succeeded but order {order.id} is {order.status}, order status left unchanged"
            )

    def _to_dict(self, payment: PaymentModel) -> Dict[str, Any]:
        return {
            "id": payment.id,
            "order_id": payment.order_id,
            "amount": payment.amount,
            "payment_method": payment.payment_method,
            "status": payment.status,
            "transaction_id": payment.transaction_id,
            "receipt_number": payment.receipt_number,
            "payment_date": payment.payment_date,
        }
