# storefront/repos/coupon_repo.py
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from storefront.data.models.coupon import CouponModel, CouponUsageModel


class CouponRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str) -> CouponModel | None:
        return self.db.query(CouponModel).populate_existing().filter(CouponModel.code == code).one_or_none()

    def use_coupon(self, coupon_id: int, user_id: int, now: datetime) -> bool:
        """Consume one use. The increment only happens while the coupon is still
        active, unexpired and below max_usage, so concurrent callers can never
        push usage_count past the limit."""
        result = self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                CouponModel.is_active.is_(True),
                CouponModel.expiry_date > now,
                CouponModel.usage_count < CouponModel.max_usage,
            )
            .values(usage_count=CouponModel.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False

        self.db.add(CouponUsageModel(coupon_id=coupon_id, user_id=user_id, used_at=now))
        return True

    def deactivate_expired(self, now: datetime) -> int:
        result = self.db.execute(
            update(CouponModel)
            .where(CouponModel.is_active.is_(True), CouponModel.expiry_date < now)
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
