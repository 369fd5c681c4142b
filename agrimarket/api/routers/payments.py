# agrimarket/api/routers/payments.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agrimarket.api.deps import get_lock_service, get_payment_gateway
from agrimarket.data.database import get_db
from agrimarket.domain.schemas import MpesaCallbackIn, PaymentCreate, PaymentOut
from agrimarket.services.lock_service import LockService
from agrimarket.services.payment_gateway import PaymentGateway
from agrimarket.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    lock_service: LockService = Depends(get_lock_service),
):
    return PaymentService(db, gateway, lock_service)


@router.post("", response_model=PaymentOut)
def process_payment(
    payload: PaymentCreate,
    user_id: int = Query(...),
    svc: PaymentService = Depends(get_service),
):
    return svc.process_payment(
        user_id,
        payload.order_id,
        payload.payment_method,
        phone_number=payload.phone_number,
        account_reference=payload.account_reference,
        transaction_desc=payload.transaction_desc,
    )


@router.get("/status/{transaction_id}", response_model=PaymentOut)
def get_payment_status(transaction_id: str, svc: PaymentService = Depends(get_service)):
    return svc.get_payment_status(transaction_id)


@router.post("/mpesa/callback", response_model=PaymentOut)
def mpesa_callback(payload: MpesaCallbackIn, svc: PaymentService = Depends(get_service)):
    return svc.handle_mpesa_callback(
        payload.checkout_request_id,
        payload.result_code,
        result_desc=payload.result_desc,
        receipt_number=payload.mpesa_receipt_number,
    )
