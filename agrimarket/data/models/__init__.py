# import all models so SQLAlchemy registers them in Base.metadata

from agrimarket.data.models.user import UserModel
from agrimarket.data.models.product import ProductModel
from agrimarket.data.models.cart import CartModel
from agrimarket.data.models.cart_item import CartItemModel
from agrimarket.data.models.order import OrderModel
from agrimarket.data.models.order_item import OrderItemModel
from agrimarket.data.models.payment import PaymentModel
from agrimarket.data.models.refresh_token import RefreshTokenModel

__all__ = [
    "UserModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
    "RefreshTokenModel",
]
