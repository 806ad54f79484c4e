"""Exception taxonomy shared by services and the HTTP layer."""

from typing import Any


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(StorefrontError):
    """Malformed, user-correctable input."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthError(StorefrontError):
    """Missing or unknown credential."""

    status_code = 401
    code = "AUTH_ERROR"


class ForbiddenError(AuthError):
    """Authenticated, but not allowed to touch the resource."""

    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(StorefrontError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(StorefrontError):
    status_code = 409
    code = "CONFLICT"


class OutOfStockError(ConflictError):
    code = "OUT_OF_STOCK"

    def __init__(self, product_id: int, requested: int, available: int):
        self.product_id = product_id
        super().__init__(
            f"Insufficient stock for product {product_id}",
            {"product_id": product_id, "requested": requested, "available": available},
        )


class CouponExhaustedError(ConflictError):
    code = "COUPON_EXHAUSTED"


class InvalidTransitionError(ConflictError):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot change order status from {current} to {target}",
            {"from": current, "to": target},
        )


class ConcurrentModificationError(ConflictError):
    """Raised when an optimistic version check fails."""

    code = "CONCURRENT_MODIFICATION"


class RateLimitedError(StorefrontError):
    status_code = 429
    code = "RATE_LIMITED"


class PaymentError(StorefrontError):
    """The gateway declined the charge."""

    status_code = 402
    code = "PAYMENT_FAILED"


class PaymentGatewayError(PaymentError):
    """The gateway could not be reached or its answer is unknown."""

    status_code = 502
    code = "PAYMENT_GATEWAY_ERROR"


class InternalError(StorefrontError):
    pass
