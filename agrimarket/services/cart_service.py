from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agrimarket.data.models.cart import CartModel
from agrimarket.data.models.cart_item import CartItemModel
from agrimarket.domain.errors import ConflictError, InvalidArgumentError, NotFoundError
from agrimarket.repos.cart_repo import CartRepo
from agrimarket.repos.product_repo import ProductRepo
from agrimarket.repos.user_repo import UserRepo
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use cases for the cart domain.
    commands (add, update, remove, clear) mutate state
    query (get) reads only, apart from creating the cart on first access
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.product_repo = ProductRepo(db)
        self.user_repo = UserRepo(db)

    # =====================================================
    # QUERY
    # =====================================================
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(user_id)
        return self._to_dict(cart)

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise InvalidArgumentError("Quantity must be at least 1")

        cart = self._get_or_create_cart(user_id)

        # no stock check here, stock is only enforced when the order is created
        product = self.product_repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product", "id", product_id)

        try:
            if self.repo.increment_item(cart.id, product_id, quantity) == 0:
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        quantity=quantity,
                    )
                )
            else:
                logger.info(f"Product {product_id} already in cart {cart.id}, quantity increased by {quantity}")
            self.repo.touch(cart, datetime.now(timezone.utc))
            self.repo.commit()
        except IntegrityError:
            # a concurrent request inserted the same line first
            self.repo.rollback()
            logger.warning(f"Concurrent insert of product {product_id} into cart {cart.id}, incrementing instead")
            try:
                if self.repo.increment_item(cart.id, product_id, quantity) == 0:
                    raise ConflictError(f"Cart line for product {product_id} changed concurrently, try again")
                self.repo.touch(cart, datetime.now(timezone.utc))
                self.repo.commit()
            except Exception:
                self.repo.rollback()
                raise
        except Exception:
            self.repo.rollback()
            raise

        return self._to_dict(cart)

    def update_item(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity < 1:
            raise InvalidArgumentError("Quantity must be at least 1")

        cart = self._get_or_create_cart(user_id)

        if self.repo.set_item_quantity(cart.id, product_id, quantity) == 0:
            self.repo.rollback()
            raise NotFoundError("CartItem", "productId", product_id)

        self.repo.touch(cart, datetime.now(timezone.utc))
        self.repo.commit()
        logger.info(f"Cart {cart.id}: product {product_id} quantity set to {quantity}")

        return self._to_dict(cart)

    def remove_item(self, user_id: int, product_id: int) -> Dict[str, Any]:
        cart = self._get_or_create_cart(user_id)

        if self.repo.delete_cart_item(cart.id, product_id) == 0:
            self.repo.rollback()
            raise NotFoundError("CartItem", "productId", product_id)

        self.repo.touch(cart, datetime.now(timezone.utc))
        self.repo.commit()
        logger.info(f"Product {product_id} removed from cart {cart.id}")

        return self._to_dict(cart)

    def clear(self, user_id: int) -> None:
        cart = self._get_or_create_cart(user_id)
        removed = self.repo.clear_items(cart.id)
        self.repo.touch(cart, datetime.now(timezone.utc))
        self.repo.commit()
        logger.info(f"Cart {cart.id} cleared ({removed} lines)")

    # =====================================================
    # helpers
    # =====================================================
    def _get_or_create_cart(self, user_id: int) -> CartModel:
        existing = self.repo.get_cart_by_user(user_id)
        if existing:
            return existing

        if not self.user_repo.get_user(user_id):
            raise NotFoundError("User", "id", user_id)

        try:
            created = self.repo.create_cart(CartModel(user_id=user_id))
        except IntegrityError:
            # two first requests raced, user_id is unique so the other one won
            self.repo.rollback()
            return self.repo.get_cart_by_user(user_id)

        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def _to_dict(self, cart: CartModel) -> Dict[str, Any]:
        # prices are read live from the product on every call
        items = self.repo.get_cart_items(cart.id)
        lines = [
            {
                "product_id": i.product_id,
                "product_name": i.product.name,
                "product_price": i.product.price,
                "quantity": i.quantity,
                "total_price": i.product.price * i.quantity,
            }
            for i in items
        ]
        total = sum((line["total_price"] for line in lines), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": lines,
            "total_items": len(lines),
            "total_price": total,
        }
