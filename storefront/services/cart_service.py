from typing import Any, Dict, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.domain import cart as cart_ops
from storefront.domain.cart import money
from storefront.domain.errors import ConcurrentModificationError, NotFoundError
from storefront.domain.sync import collapse, sync
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.coupon_service import CouponService
from storefront.utils.retry import conflict_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases for one user's cart.
    commands (add, set, remove, empty, sync, apply coupon) change state and
    go through the optimistic version check
    queries (get, totals) only read
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.coupons = CouponService(db)

    #queries
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            return self._empty_view(user_id)
        return self._view(cart)

    def get_totals(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            return {"total_items": 0, "subtotal": money(0), "total_price": money(0)}

        totals = cart_ops.compute_totals(cart)
        return {
            "total_items": totals.item_count,
            "subtotal": money(totals.subtotal),
            "total_price": money(totals.total),
        }

    #commands
    @conflict_retry()
    def add_item(self, user_id: int, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        product = self.products.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", {"product_id": product_id})

        cart = self.repo.get_or_create_cart(user_id)
        item = cart_ops.add_item(cart, product, quantity)
        self._save(cart)

        logger.info(f"Product {product_id} in cart {cart.id} now has quantity {item.quantity}")
        return self._view(cart)

    @conflict_retry()
    def set_quantity(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        cart = self._require_cart(user_id, "Product not found in cart")
        cart_ops.set_quantity(cart, product_id, quantity)
        self._save(cart)

        logger.info(f"Quantity of product {product_id} in cart {cart.id} set to {max(quantity, 0)}")
        return self._view(cart)

    @conflict_retry()
    def remove_item(self, user_id: int, product_id: int) -> Dict[str, Any]:
        cart = self._require_cart(user_id, "Product not found in cart")
        cart_ops.remove_item(cart, product_id)
        self._save(cart)

        logger.info(f"Product {product_id} removed from cart {cart.id}")
        return self._view(cart)

    @conflict_retry()
    def empty_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self._require_cart(user_id)
        cart_ops.empty_cart(cart)
        self._save(cart)

        logger.info(f"Cart {cart.id} emptied")
        return self._view(cart)

    @conflict_retry()
    def sync(self, user_id: int, client_items: Iterable[tuple[int, int]]) -> Dict[str, Any]:
        client_items = list(client_items)
        wanted = [pid for pid, qty in collapse(client_items).items() if qty > 0]
        products = self.products.get_products(wanted)

        cart = self.repo.get_or_create_cart(user_id)
        sync(cart, client_items, products)
        self._save(cart)

        logger.info(f"Cart {cart.id} synced with {len(client_items)} client items")
        return self._view(cart)

    @conflict_retry()
    def apply_coupon(self, user_id: int, code: str) -> Dict[str, Any]:
        cart = self._require_cart(user_id)

        # coupon use and cart discount are committed together in _save
        fraction = self.coupons.redeem(code, user_id)
        cart_ops.apply_discount(cart, fraction)
        self._save(cart)

        logger.info(f"Coupon {code!r} applied to cart {cart.id}, discount {fraction}")
        return {"message": "Coupon applied successfully", "discount": fraction}

    #helpers
    def _require_cart(self, user_id: int, message: str = "Cart not found") -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart is None:
            raise NotFoundError(message)
        return cart

    def _save(self, cart: CartModel):
        """Flush pending line changes, bump the version and commit.

        A version mismatch (or a unique-constraint clash on a line) means
        another request changed the cart in the meantime; everything is
        rolled back and the operation retried.
        """
        try:
            self.repo.flush()
            rowcount = self.repo.update_cart_version(cart.id, cart.version)
            if rowcount == 0:
                raise ConcurrentModificationError("Cart was modified by another request")
            self.repo.commit()
        except IntegrityError as e:
            self.repo.rollback()
            logger.warning(f"Concurrent modification of cart {cart.id}, retrying")
            raise ConcurrentModificationError("Cart was modified by another request") from e
        except ConcurrentModificationError:
            self.repo.rollback()
            logger.warning(f"Concurrent modification of cart {cart.id}, retrying")
            raise

    def _view(self, cart: CartModel) -> Dict[str, Any]:
        totals = cart_ops.compute_totals(cart)
        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": [
                {
                    "product_id": i.product_id,
                    "name": i.product.name,
                    "quantity": i.quantity,
                    "unit_price": money(i.product.price),
                    "discount": cart_ops.to_decimal(i.product.discount),
                    "line_total": money(
                        cart_ops.line_subtotal(i.quantity, i.product.price, i.product.discount)
                    ),
                }
                for i in cart.items
            ],
            "discount": cart_ops.to_decimal(cart.discount),
            "item_count": totals.item_count,
            "subtotal": money(totals.subtotal),
            "total": money(totals.total),
        }

    @staticmethod
    def _empty_view(user_id: int) -> Dict[str, Any]:
        return {
            "cart_id": None,
            "user_id": user_id,
            "items": [],
            "discount": money(0),
            "item_count": 0,
            "subtotal": money(0),
            "total": money(0),
        }
