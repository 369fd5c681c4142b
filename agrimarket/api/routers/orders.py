# agrimarket/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from agrimarket.api.deps import get_lock_service, require_admin
from agrimarket.data.database import get_db
from agrimarket.domain.enums import OrderStatus
from agrimarket.domain.schemas import OrderCreate, OrderOut, OrderPage
from agrimarket.services.lock_service import LockService
from agrimarket.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session = Depends(get_db), lock_service: LockService = Depends(get_lock_service)):
    return OrderService(db, lock_service)


@router.post("", response_model=OrderOut, status_code=201)
def create_order(
    payload: OrderCreate,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Creates an order from the caller's cart, reserving stock.
    Sends a notification asynchronously.
    """
    return svc.create_order(
        user_id,
        customer_info=payload.customer_info.model_dump(),
        delivery_info=payload.delivery_info.model_dump(),
        payment_reference=payload.payment_reference,
    )


@router.get("", response_model=OrderPage)
def get_user_orders(
    user_id: int = Query(...),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    svc: OrderService = Depends(get_service),
):
    return svc.get_user_orders(user_id, page, size)


# admin routes are declared before /{order_id} so "admin" isn't read as an id
@router.get("/admin", response_model=OrderPage)
def get_all_orders(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    admin_id: int = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    return svc.get_all_orders(page, size)


@router.put("/admin/{order_id}/status", response_model=OrderOut)
def update_order_status(
    order_id: str,
    status: OrderStatus = Query(...),
    admin_id: int = Depends(require_admin),
    svc: OrderService = Depends(get_service),
):
    return svc.update_order_status(order_id, status)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    svc: OrderService = Depends(get_service),
):
    """
    Order details.
    """
    return svc.get_order_details(order_id)
