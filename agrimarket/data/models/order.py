from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from agrimarket.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(20), primary_key=True)  # ORD-XXXXXXXX
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # customer / delivery snapshot
    customer_first_name = Column(String(100), nullable=False)
    customer_last_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    delivery_address = Column(String(500), nullable=False)
    delivery_city = Column(String(100), nullable=False)
    delivery_county = Column(String(100), nullable=False)
    delivery_postal_code = Column(String(20), nullable=True)
    delivery_notes = Column(String(500), nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="PENDING")
    payment_reference = Column(String(255), nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship("OrderItemModel", back_populates="order", order_by="OrderItemModel.id")
    payment = relationship("PaymentModel", back_populates="order", uselist=False)
