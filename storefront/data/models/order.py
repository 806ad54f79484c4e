from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False, default="")
    phone_number = Column(String, nullable=False, default="")
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    zip = Column(String, nullable=False)
    country = Column(String, nullable=False)

    payment_method = Column(String, nullable=False)  # Credit Card, PayPal, Cash App
    payment_status = Column(String, nullable=False, default="Pending")  # Pending, Paid, Failed
    order_status = Column(String, nullable=False, default="Pending")  # Pending, Processing, Shipped, Delivered, Cancelled
    transaction_id = Column(String, nullable=True)

    subtotal = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(5, 4), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)

    tracking_number = Column(String, nullable=False, default="")
    delivery_date = Column(DateTime(timezone=True), nullable=True)
    order_notes = Column(Text, nullable=False, default="")
    deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)

    name = Column(String, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    quantity = Column(Integer, nullable=False)
    image_url = Column(String, nullable=False, default="")

    order = relationship("OrderModel", back_populates="items")
