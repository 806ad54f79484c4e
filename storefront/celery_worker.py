# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, COUPON_SWEEP_SECONDS

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# tasks have to be imported explicitly to get registered
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "deactivate-expired-coupons": {
        "task": "storefront.tasks.expire.deactivate_expired_coupons_task",
        "schedule": COUPON_SWEEP_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
