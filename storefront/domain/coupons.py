"""Coupon evaluation.

A coupon is usable when it exists, is active, has not expired and still has
uses left. The stored ``is_active`` flag is not trusted on its own: a coupon
past its expiry date is treated as inactive regardless.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

NOT_FOUND = "not_found"
INACTIVE = "inactive"
EXPIRED = "expired"
USAGE_LIMIT_REACHED = "usage_limit_reached"

REASON_MESSAGES = {
    NOT_FOUND: "Coupon does not exist",
    INACTIVE: "Coupon is inactive",
    EXPIRED: "Coupon has expired",
    USAGE_LIMIT_REACHED: "Coupon usage limit reached",
}


@dataclass(frozen=True)
class Valid:
    discount_fraction: Decimal


@dataclass(frozen=True)
class Invalid:
    reason: str

    @property
    def message(self) -> str:
        return REASON_MESSAGES.get(self.reason, self.reason)


def as_utc(value: datetime) -> datetime:
    # sqlite hands timestamps back without tzinfo; they are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def percent_to_fraction(percent) -> Decimal:
    return Decimal(str(percent)) / Decimal(100)


def is_expired(coupon, now: datetime) -> bool:
    return as_utc(now) > as_utc(coupon.expiry_date)


def evaluate(coupon, now: datetime) -> Valid | Invalid:
    if coupon is None:
        return Invalid(NOT_FOUND)
    if not coupon.is_active:
        return Invalid(INACTIVE)
    if is_expired(coupon, now):
        return Invalid(EXPIRED)
    if coupon.usage_count >= coupon.max_usage:
        return Invalid(USAGE_LIMIT_REACHED)
    return Valid(percent_to_fraction(coupon.discount))
