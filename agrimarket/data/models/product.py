from sqlalchemy import CheckConstraint, Column, Integer, Numeric, String

from agrimarket.data.database import Base


class ProductModel(Base):
    """
    Read side of the external catalog. Only `stock` is written here,
    by order creation.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")

    __table_args__ = (CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),)
