# storefront/services/coupon_service.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from storefront.domain.coupons import Invalid, evaluate
from storefront.domain.errors import CouponExhaustedError, ValidationError
from storefront.repos.coupon_repo import CouponRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CouponService:
    def __init__(self, db: Session):
        self.repo = CouponRepo(db)

    def redeem(self, code: str, user_id: int, now: datetime | None = None) -> Decimal:
        """Validate ``code`` and consume one use of it for ``user_id``.

        Nothing is committed here; the caller commits together with whatever
        the discount is applied to. Returns the discount as a fraction.
        """
        now = now or datetime.now(timezone.utc)
        coupon = self.repo.get_by_code(code.strip())

        decision = evaluate(coupon, now)
        if isinstance(decision, Invalid):
            logger.info(f"Coupon {code!r} rejected for user {user_id}: {decision.reason}")
            raise ValidationError(
                "Invalid or expired coupon code",
                {"reason": decision.reason, "message": decision.message},
            )

        if not self.repo.use_coupon(coupon.id, user_id, now):
            # lost the race for the last use
            raise CouponExhaustedError("Coupon usage limit reached", {"code": coupon.code})

        logger.info(f"Coupon {coupon.code} used by user {user_id}")
        return decision.discount_fraction
