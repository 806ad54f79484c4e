"""Merge of a client-local cart into the server cart.

Last-write-wins per product: a quantity sent by the client replaces the
server's; lines the client does not mention are left alone. Quantities are
never summed, so edits made on two devices at once are not reconciled.
"""

from typing import Iterable, Mapping

from storefront.data.models.cart_item import CartItemModel
from storefront.domain.cart import find_item
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def collapse(client_items: Iterable[tuple[int, int]]) -> dict[int, int]:
    """Later entries for the same product win."""
    merged: dict[int, int] = {}
    for product_id, quantity in client_items:
        merged[product_id] = quantity
    return merged


def sync(cart, client_items: Iterable[tuple[int, int]], products: Mapping[int, object]):
    """Apply ``client_items`` onto ``cart`` in place and return it.

    ``products`` maps product id to a live, non-deleted product; client lines
    pointing anywhere else are stale and skipped. A quantity of zero or less
    removes the line. Calling it again with the same items is a no-op.
    """
    for product_id, quantity in collapse(client_items).items():
        existing = find_item(cart, product_id)

        if quantity <= 0:
            if existing is not None:
                cart.items.remove(existing)
            continue

        if existing is not None:
            existing.quantity = quantity
            continue

        product = products.get(product_id)
        if product is None:
            logger.warning(f"Skipping unknown product {product_id} during cart sync")
            continue

        cart.items.append(CartItemModel(product_id=product_id, product=product, quantity=quantity))

    return cart
