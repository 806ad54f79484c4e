#storefront/data/models/coupon.py
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, event
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.coupons import is_expired


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String, nullable=False, unique=True)
    discount = Column(Numeric(5, 2), nullable=False)  # percent, 0-100
    expiry_date = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    usage_count = Column(Integer, nullable=False, default=0)
    max_usage = Column(Integer, nullable=False, default=1)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    usages = relationship(
        "CouponUsageModel",
        back_populates="coupon",
        cascade="all, delete-orphan",
        order_by="CouponUsageModel.id",
    )


class CouponUsageModel(Base):
    __tablename__ = "coupon_usages"

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    coupon = relationship("CouponModel", back_populates="usages")


@event.listens_for(CouponModel, "before_insert")
@event.listens_for(CouponModel, "before_update")
def _deactivate_expired(mapper, connection, target):
    # expired coupons are switched off on the next write
    if target.expiry_date is not None and is_expired(target, datetime.now(timezone.utc)):
        target.is_active = False
