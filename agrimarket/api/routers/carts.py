# agrimarket/api/routers/carts.py
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from agrimarket.data.database import get_db
from agrimarket.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartOut,
)
from agrimarket.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user_id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    return get_service(db).add_item(
        user_id=user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
    )


@router.put("/items/{product_id}", response_model=CartOut)
def update_item(
    product_id: int,
    payload: CartItemUpdate,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    return get_service(db).update_item(user_id, product_id, payload.quantity)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    return get_service(db).remove_item(user_id, product_id)


@router.delete("", status_code=204)
def clear_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    get_service(db).clear(user_id)
    return Response(status_code=204)
