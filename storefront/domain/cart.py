"""Cart aggregate operations.

Functions here mutate a ``CartModel`` in memory and never touch the session;
persisting the result (and the version check around it) is the caller's job.

Discount policy: the per-product percentage is applied to each line first and
the cart-level fraction (from a coupon) is applied to the resulting subtotal.
Both always apply.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import NotFoundError, OutOfStockError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


def money(value) -> Decimal:
    """Round to cents. Only used where a value leaves the system."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartTotals:
    item_count: int
    subtotal: Decimal
    total: Decimal


def find_item(cart, product_id: int):
    return next((i for i in cart.items if i.product_id == product_id), None)


def _check_stock(product, quantity: int):
    if product.stock < quantity:
        raise OutOfStockError(product.id, requested=quantity, available=product.stock)


def add_item(cart, product, quantity: int = 1, check_stock: bool = True):
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", {"quantity": quantity})
    if product is None or product.deleted:
        raise NotFoundError("Product not found")

    existing = find_item(cart, product.id)
    new_quantity = quantity + (existing.quantity if existing else 0)
    if check_stock:
        _check_stock(product, new_quantity)

    if existing:
        existing.quantity = new_quantity
        return existing

    item = CartItemModel(product_id=product.id, product=product, quantity=quantity)
    cart.items.append(item)
    return item


def remove_item(cart, product_id: int):
    item = find_item(cart, product_id)
    if item is None:
        raise NotFoundError("Product not found in cart")
    cart.items.remove(item)
    return item


def set_quantity(cart, product_id: int, quantity: int, check_stock: bool = True):
    if quantity <= 0:
        return remove_item(cart, product_id)

    item = find_item(cart, product_id)
    if item is None:
        raise NotFoundError("Product not found in cart")
    if check_stock:
        _check_stock(item.product, quantity)
    item.quantity = quantity
    return item


def apply_discount(cart, fraction: Decimal):
    fraction = to_decimal(fraction)
    if not ZERO <= fraction <= ONE:
        raise ValidationError("Discount must be between 0 and 1", {"discount": str(fraction)})
    cart.discount = fraction


def empty_cart(cart):
    cart.items.clear()
    cart.discount = ZERO


def line_subtotal(quantity: int, price, discount_percent) -> Decimal:
    return quantity * to_decimal(price) * (ONE - to_decimal(discount_percent) / 100)


def compute_totals(cart) -> CartTotals:
    item_count = sum(i.quantity for i in cart.items)
    subtotal = sum(
        (line_subtotal(i.quantity, i.product.price, i.product.discount) for i in cart.items),
        ZERO,
    )
    total = subtotal * (ONE - to_decimal(cart.discount))
    return CartTotals(item_count=item_count, subtotal=subtotal, total=total)
