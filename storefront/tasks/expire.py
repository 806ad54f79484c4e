# storefront/tasks/expire.py
from datetime import datetime, timezone

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.coupon_repo import CouponRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def deactivate_expired_coupons(db, now: datetime | None = None) -> int:
    count = CouponRepo(db).deactivate_expired(now or datetime.now(timezone.utc))
    db.commit()
    logger.info(f"Deactivated {count} expired coupons")
    return count


@celery_app.task(name="storefront.tasks.expire.deactivate_expired_coupons_task")
def deactivate_expired_coupons_task():
    logger.info("Expire coupons task started")

    db = SessionLocal()
    try:
        return deactivate_expired_coupons(db)
    finally:
        db.close()
