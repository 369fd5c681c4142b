# agrimarket/repos/product_repo.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from agrimarket.data.models.product import ProductModel


class ProductRepo:
    """Inventory store: product lookups and stock reservation."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def reserve_stock(self, product_id: int, quantity: int) -> bool:
        """
        Check-and-decrement in a single statement:
        UPDATE products SET stock = stock - q WHERE id = ? AND stock >= q
        Nothing is committed here, the caller owns the transaction.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
