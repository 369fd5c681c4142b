# agrimarket/services/payment_gateway.py
import uuid
from decimal import Decimal
from typing import Any, Dict

from requests import RequestException

from agrimarket.domain.enums import PaymentMethod, PaymentStatus
from agrimarket.services.mpesa_client import MpesaClient
from agrimarket.utils import settings
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


def _reference(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class PaymentGateway:
    """
    Settles a payment attempt with the provider behind each method.

    Returns a dict with `status` (PaymentStatus) and whatever provider
    references are known at this point: transaction_id, receipt_number,
    merchant_request_id, checkout_request_id.
    """

    def __init__(self, mpesa_client: MpesaClient | None = None, simulate_mpesa: bool | None = None):
        self.mpesa_client = mpesa_client or MpesaClient()
        self.simulate_mpesa = settings.MPESA_SIMULATE if simulate_mpesa is None else simulate_mpesa

    def settle(
        self,
        method: PaymentMethod,
        amount: Decimal,
        order_id: str,
        phone_number: str | None = None,
        account_reference: str | None = None,
        description: str | None = None,
    ) -> Dict[str, Any]:
        if method == PaymentMethod.MPESA:
            return self._settle_mpesa(amount, order_id, phone_number, account_reference, description)

        # card and cash on delivery are confirmed out of band
        logger.info(f"{method.value} payment for order {order_id} left pending")
        return {
            "status": PaymentStatus.PENDING,
            "transaction_id": _reference(method.value),
        }

    def _settle_mpesa(self, amount, order_id, phone_number, account_reference, description) -> Dict[str, Any]:
        if self.simulate_mpesa:
            logger.info(f"Simulated M-Pesa settlement for order {order_id}")
            return {
                "status": PaymentStatus.SUCCESS,
                "transaction_id": _reference("MPESA"),
                "receipt_number": _reference("RCPT"),
            }

        if not phone_number:
            logger.warning(f"M-Pesa payment for order {order_id} has no phone number")
            return {"status": PaymentStatus.FAILED, "transaction_id": _reference("MPESA")}

        try:
            resp = self.mpesa_client.stk_push(
                phone_number=phone_number,
                amount=amount,
                account_reference=account_reference or order_id,
                description=description or f"Payment for {order_id}",
            )
        except RequestException as e:
            logger.error(f"M-Pesa STK push for order {order_id} failed: {e}")
            return {"status": PaymentStatus.FAILED, "transaction_id": _reference("MPESA")}

        checkout_request_id = resp.get("CheckoutRequestID")
        if str(resp.get("ResponseCode")) != "0" or not checkout_request_id:
            logger.warning(f"M-Pesa rejected STK push for order {order_id}: {resp.get('ResponseDescription')}")
            return {"status": PaymentStatus.FAILED, "transaction_id": _reference("MPESA")}

        # accepted, the result arrives later on the callback
        return {
            "status": PaymentStatus.PENDING,
            "transaction_id": checkout_request_id,
            "merchant_request_id": resp.get("MerchantRequestID"),
            "checkout_request_id": checkout_request_id,
        }
