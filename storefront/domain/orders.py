"""Order snapshots, shipping validation and the order status machine."""

import re
import secrets
from datetime import datetime
from decimal import Decimal

from storefront.data.models.order import OrderItemModel
from storefront.domain.cart import ONE, ZERO, line_subtotal, to_decimal
from storefront.domain.errors import InvalidTransitionError, ValidationError

PENDING = "Pending"
PROCESSING = "Processing"
SHIPPED = "Shipped"
DELIVERED = "Delivered"
CANCELLED = "Cancelled"

PAID = "Paid"
FAILED = "Failed"

ORDER_STATUSES = (PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED)
PAYMENT_STATUSES = (PENDING, PAID, FAILED)
PAYMENT_METHODS = ("Credit Card", "PayPal", "Cash App")

TRANSITIONS = {
    PENDING: {PROCESSING, CANCELLED},
    PROCESSING: {SHIPPED, CANCELLED},
    SHIPPED: {DELIVERED},
    DELIVERED: set(),
    CANCELLED: set(),
}

ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
PHONE_RE = re.compile(r"^\+?\d{10,15}$")

REQUIRED_SHIPPING_FIELDS = ("full_name", "address", "city", "state", "zip", "country")


def validate_shipping(info: dict) -> dict:
    """Return cleaned shipping fields or raise with every offending field."""
    cleaned = {k: (info.get(k) or "").strip() for k in REQUIRED_SHIPPING_FIELDS + ("email", "phone_number")}
    errors: dict[str, str] = {}

    for field in REQUIRED_SHIPPING_FIELDS:
        if not cleaned[field]:
            errors[field] = "This field is required"

    if cleaned["zip"] and not ZIP_RE.match(cleaned["zip"]):
        errors["zip"] = "Invalid ZIP code"
    if cleaned["email"] and not EMAIL_RE.match(cleaned["email"]):
        errors["email"] = "Invalid email address"
    if cleaned["phone_number"] and not PHONE_RE.match(cleaned["phone_number"]):
        errors["phone_number"] = "Invalid phone number"

    payment_method = (info.get("payment_method") or "").strip()
    if payment_method not in PAYMENT_METHODS:
        errors["payment_method"] = f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}"

    if errors:
        raise ValidationError("Invalid checkout details", {"fields": errors})

    cleaned["email"] = cleaned["email"].lower()
    cleaned["payment_method"] = payment_method
    return cleaned


def snapshot_items(cart) -> list[OrderItemModel]:
    # prices are copied so later catalog changes never touch a placed order
    return [
        OrderItemModel(
            product_id=i.product_id,
            name=i.product.name,
            unit_price=to_decimal(i.product.price),
            discount=to_decimal(i.product.discount),
            quantity=i.quantity,
            image_url=i.product.image_url or "",
        )
        for i in cart.items
    ]


def calculate_subtotal(items) -> Decimal:
    return sum((line_subtotal(i.quantity, i.unit_price, i.discount) for i in items), ZERO)


def calculate_total(items, discount) -> Decimal:
    return calculate_subtotal(items) * (ONE - to_decimal(discount))


def new_tracking_number() -> str:
    return secrets.token_hex(10).upper()


def transition(order, target: str, now: datetime):
    if target not in ORDER_STATUSES:
        raise ValidationError(f"Invalid order status: {target}", {"status": target})

    current = order.order_status
    if target not in TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(current, target)

    order.order_status = target
    order.updated_at = now
    if target == SHIPPED:
        order.tracking_number = new_tracking_number()
    elif target == DELIVERED:
        order.delivery_date = now
    return order


def append_note(order, note: str, now: datetime):
    note = (note or "").strip()
    if not note:
        raise ValidationError("Note must not be empty", {"note": note})
    order.order_notes = (order.order_notes or "") + f"{now.isoformat()}: {note}\n"
    order.updated_at = now
    return order
