"""Tests for PaymentService, PaymentGateway and the M-Pesa client."""

from decimal import Decimal

import pytest
import requests

from agrimarket.data.database import SessionLocal
from agrimarket.data.models import OrderModel, PaymentModel
from agrimarket.domain.enums import OrderStatus, PaymentMethod, PaymentStatus
from agrimarket.domain.errors import InvalidStateError, NotFoundError
from agrimarket.services.cart_service import CartService
from agrimarket.services.lock_service import payment_lock_key
from agrimarket.services.mpesa_client import MpesaClient
from agrimarket.services.order_service import OrderService
from agrimarket.services.payment_gateway import PaymentGateway
from agrimarket.services.payment_service import PaymentService


class AcceptingMpesaClient:
    """STK push accepted, result comes later through the callback."""

    def __init__(self):
        self.calls = []

    def stk_push(self, phone_number, amount, account_reference, description):
        self.calls.append((phone_number, amount, account_reference))
        return {
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": "ws_CO_191220191020363925",
            "ResponseCode": "0",
            "ResponseDescription": "Success. Request accepted for processing",
        }


class RejectingMpesaClient:
    def stk_push(self, phone_number, amount, account_reference, description):
        return {"ResponseCode": "1", "ResponseDescription": "Rejected"}


class UnreachableMpesaClient:
    def stk_push(self, phone_number, amount, account_reference, description):
        raise requests.ConnectionError("daraja down")


@pytest.fixture
def order(db, lock_service, make_user, make_product, customer_info, delivery_info):
    user = make_user()
    product = make_product(price="50.00", stock=10)
    CartService(db).add_item(user.id, product.id, 2)
    return OrderService(db, lock_service).create_order(user.id, customer_info, delivery_info)


def _service(db, lock_service, gateway=None):
    return PaymentService(db, gateway or PaymentGateway(simulate_mpesa=True), lock_service)


def _order_status(db, order_id):
    db.expire_all()
    return db.get(OrderModel, order_id).status


class TestProcessPayment:
    def test_mpesa_settles_and_confirms_order(self, db, lock_service, order):
        payment = _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)

        assert payment["status"] == PaymentStatus.SUCCESS.value
        assert payment["amount"] == order["total"] == Decimal("300.00")
        assert payment["transaction_id"].startswith("MPESA-")
        assert payment["receipt_number"].startswith("RCPT-")
        assert _order_status(db, order["id"]) == OrderStatus.CONFIRMED.value

    def test_cash_stays_pending(self, db, lock_service, order):
        payment = _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.CASH)

        assert payment["status"] == PaymentStatus.PENDING.value
        assert payment["transaction_id"].startswith("CASH-")
        assert payment["receipt_number"] is None
        assert _order_status(db, order["id"]) == OrderStatus.PENDING.value

    def test_failed_settlement_leaves_order_unchanged(self, db, lock_service, order):
        gateway = PaymentGateway(mpesa_client=RejectingMpesaClient(), simulate_mpesa=False)

        payment = _service(db, lock_service, gateway).process_payment(
            order["user_id"], order["id"], PaymentMethod.MPESA, phone_number="254712345678"
        )

        assert payment["status"] == PaymentStatus.FAILED.value
        assert _order_status(db, order["id"]) == OrderStatus.PENDING.value

    def test_transport_failure_is_a_failed_settlement(self, db, lock_service, order):
        gateway = PaymentGateway(mpesa_client=UnreachableMpesaClient(), simulate_mpesa=False)

        payment = _service(db, lock_service, gateway).process_payment(
            order["user_id"], order["id"], PaymentMethod.MPESA, phone_number="254712345678"
        )

        assert payment["status"] == PaymentStatus.FAILED.value

    def test_failed_attempt_is_reused_by_retry(self, db, lock_service, order):
        rejecting = PaymentGateway(mpesa_client=RejectingMpesaClient(), simulate_mpesa=False)
        failed = _service(db, lock_service, rejecting).process_payment(
            order["user_id"], order["id"], PaymentMethod.MPESA, phone_number="254712345678"
        )

        paid = _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)

        assert paid["id"] == failed["id"]
        assert paid["status"] == PaymentStatus.SUCCESS.value
        assert db.query(PaymentModel).count() == 1

    def test_provider_called_outside_transaction(self, db, lock_service, order):
        seen = {}

        class RecordingGateway(PaymentGateway):
            def settle(self, method, amount, order_id, **kwargs):
                seen["in_transaction"] = db.in_transaction()
                other = SessionLocal()
                try:
                    row = other.query(PaymentModel).filter_by(order_id=order_id).one()
                    seen["status"] = row.status
                finally:
                    other.close()
                return super().settle(method, amount, order_id, **kwargs)

        payment = _service(db, lock_service, RecordingGateway(simulate_mpesa=True)).process_payment(
            order["user_id"], order["id"], PaymentMethod.MPESA
        )

        assert seen == {"in_transaction": False, "status": PaymentStatus.PENDING.value}
        assert payment["status"] == PaymentStatus.SUCCESS.value

    def test_gateway_error_leaves_attempt_reusable(self, db, lock_service, order):
        class BrokenGateway(PaymentGateway):
            def settle(self, *args, **kwargs):
                raise RuntimeError("provider exploded")

        with pytest.raises(RuntimeError):
            _service(db, lock_service, BrokenGateway(simulate_mpesa=True)).process_payment(
                order["user_id"], order["id"], PaymentMethod.MPESA
            )

        paid = _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)
        assert paid["status"] == PaymentStatus.SUCCESS.value
        assert db.query(PaymentModel).count() == 1

    def test_paid_order_cannot_be_paid_again(self, db, lock_service, order):
        service = _service(db, lock_service)
        service.process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)

        with pytest.raises(InvalidStateError):
            service.process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)
        assert db.query(PaymentModel).count() == 1

    def test_cancelled_order_cannot_be_paid(self, db, lock_service, order):
        OrderService(db, lock_service).update_order_status(order["id"], OrderStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.CARD)

    def test_unknown_order(self, db, lock_service, make_user):
        user = make_user()

        with pytest.raises(NotFoundError) as exc:
            _service(db, lock_service).process_payment(user.id, "ORD-NOPE0000", PaymentMethod.MPESA)
        assert exc.value.resource == "Order"

    def test_unknown_user(self, db, lock_service, order):
        with pytest.raises(NotFoundError) as exc:
            _service(db, lock_service).process_payment(999, order["id"], PaymentMethod.MPESA)
        assert exc.value.resource == "User"

    def test_payment_in_progress(self, db, lock_service, redis_client, order):
        redis_client.set(payment_lock_key(order["id"]), "other-request")

        with pytest.raises(InvalidStateError):
            _service(db, lock_service).process_payment(order["user_id"], order["id"], PaymentMethod.MPESA)


class TestPaymentStatus:
    def test_lookup_by_transaction_id(self, db, lock_service, order):
        service = _service(db, lock_service)
        payment = service.process_payment(order["user_id"], order["id"], PaymentMethod.CARD)

        status = service.get_payment_status(payment["transaction_id"])

        assert status["id"] == payment["id"]
        assert status["status"] == PaymentStatus.PENDING.value

    def test_unknown_transaction(self, db, lock_service):
        with pytest.raises(NotFoundError):
            _service(db, lock_service).get_payment_status("MPESA-UNKNOWN")


class TestMpesaCallback:
    @pytest.fixture
    def pending(self, db, lock_service, order):
        gateway = PaymentGateway(mpesa_client=AcceptingMpesaClient(), simulate_mpesa=False)
        service = _service(db, lock_service, gateway)
        payment = service.process_payment(
            order["user_id"], order["id"], PaymentMethod.MPESA, phone_number="254712345678"
        )
        return service, payment

    def test_pending_until_callback(self, db, order, pending):
        service, payment = pending

        assert payment["status"] == PaymentStatus.PENDING.value
        assert payment["transaction_id"] == "ws_CO_191220191020363925"
        assert service.get_payment_status(payment["transaction_id"])["status"] == PaymentStatus.PENDING.value
        assert _order_status(db, order["id"]) == OrderStatus.PENDING.value

    def test_successful_callback(self, db, order, pending):
        service, payment = pending

        settled = service.handle_mpesa_callback("ws_CO_191220191020363925", 0, "ok", "NLJ7RT61SV")

        assert settled["status"] == PaymentStatus.SUCCESS.value
        assert settled["receipt_number"] == "NLJ7RT61SV"
        assert _order_status(db, order["id"]) == OrderStatus.CONFIRMED.value

    def test_failed_callback(self, db, order, pending):
        service, _ = pending

        settled = service.handle_mpesa_callback("ws_CO_191220191020363925", 1032, "Request cancelled by user")

        assert settled["status"] == PaymentStatus.FAILED.value
        assert _order_status(db, order["id"]) == OrderStatus.PENDING.value

    def test_second_attempt_while_push_pending_is_rejected(self, db, lock_service, order, pending):
        service, payment = pending

        with pytest.raises(InvalidStateError, match="already in progress"):
            service.process_payment(order["user_id"], order["id"], PaymentMethod.MPESA, phone_number="254712345678")

        # the first push can still be polled and settled
        assert service.get_payment_status(payment["transaction_id"])["status"] == PaymentStatus.PENDING.value
        settled = service.handle_mpesa_callback("ws_CO_191220191020363925", 0, "ok", "NLJ7RT61SV")
        assert settled["id"] == payment["id"]
        assert settled["status"] == PaymentStatus.SUCCESS.value
        assert _order_status(db, order["id"]) == OrderStatus.CONFIRMED.value

    def test_late_success_keeps_cancelled_order(self, db, lock_service, order, pending):
        service, _ = pending
        OrderService(db, lock_service).update_order_status(order["id"], OrderStatus.CANCELLED)

        settled = service.handle_mpesa_callback("ws_CO_191220191020363925", 0, "ok", "NLJ7RT61SV")

        assert settled["status"] == PaymentStatus.SUCCESS.value
        assert _order_status(db, order["id"]) == OrderStatus.CANCELLED.value

    def test_duplicate_callback_is_ignored(self, db, order, pending):
        service, _ = pending
        service.handle_mpesa_callback("ws_CO_191220191020363925", 0, "ok", "NLJ7RT61SV")

        again = service.handle_mpesa_callback("ws_CO_191220191020363925", 1, "late failure")

        assert again["status"] == PaymentStatus.SUCCESS.value
        assert again["receipt_number"] == "NLJ7RT61SV"

    def test_unknown_checkout_request(self, db, lock_service):
        with pytest.raises(NotFoundError):
            _service(db, lock_service).handle_mpesa_callback("ws_CO_unknown", 0)


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


class TestMpesaClient:
    def test_stk_push_payload(self, monkeypatch):
        sent = {}

        def fake_get(url, params=None, auth=None, timeout=None):
            sent["auth"] = auth
            return FakeResponse({"access_token": "abc123"})

        def fake_post(url, json=None, headers=None, timeout=None):
            sent["url"] = url
            sent["json"] = json
            sent["headers"] = headers
            return FakeResponse({"ResponseCode": "0", "CheckoutRequestID": "ws_CO_1"})

        monkeypatch.setattr("agrimarket.services.mpesa_client.requests.get", fake_get)
        monkeypatch.setattr("agrimarket.services.mpesa_client.requests.post", fake_post)

        client = MpesaClient(
            base_url="https://daraja.test/",
            consumer_key="key",
            consumer_secret="secret",
            shortcode="174379",
            passkey="pass",
        )
        resp = client.stk_push("254712345678", Decimal("330.50"), "ORD-1234ABCD", "Order payment")

        assert resp["CheckoutRequestID"] == "ws_CO_1"
        assert sent["auth"] == ("key", "secret")
        assert sent["url"] == "https://daraja.test/mpesa/stkpush/v1/processrequest"
        assert sent["headers"] == {"Authorization": "Bearer abc123"}
        assert sent["json"]["Amount"] == 331
        assert sent["json"]["PhoneNumber"] == "254712345678"
        assert sent["json"]["AccountReference"] == "ORD-1234ABCD"
