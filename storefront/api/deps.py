# storefront/api/deps.py
from functools import lru_cache

from fastapi import Depends, Header, Request
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import AuthError, ForbiddenError, RateLimitedError
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import GatewayPaymentClient
from storefront.services.rate_limiter import RateLimiter
from storefront.utils.settings import RATE_LIMIT_PER_MINUTE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_rate_limiter() -> RateLimiter | None:
    if RATE_LIMIT_PER_MINUTE <= 0:
        return None
    return RateLimiter(limit=RATE_LIMIT_PER_MINUTE)


def get_payment_processor() -> GatewayPaymentClient:
    return GatewayPaymentClient()


def get_notifier() -> NotificationService:
    return NotificationService()


def rate_limit(request: Request, limiter: RateLimiter | None = Depends(get_rate_limiter)):
    if limiter is None:
        return

    client_key = request.client.host if request.client else "unknown"
    try:
        allowed = limiter.hit(client_key)
    except RedisError as e:
        # limiter unavailable: let the request through
        logger.warning(f"Rate limiter unavailable: {e}")
        return

    if not allowed:
        raise RateLimitedError("Too many requests, please try again later")


def get_current_user(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> UserModel:
    """Resolve the caller from the X-User-Id header set by the auth gateway."""
    if not x_user_id:
        raise AuthError("Authentication required")

    try:
        user_id = int(x_user_id)
    except ValueError:
        raise AuthError("Invalid credentials") from None

    user = UserRepo(db).get_user(user_id)
    if user is None:
        raise AuthError("Invalid credentials")
    return user


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
