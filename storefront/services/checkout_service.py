# storefront/services/checkout_service.py
import uuid
from datetime import datetime, timezone

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain import orders as order_ops
from storefront.domain.cart import ZERO, empty_cart, money
from storefront.domain.errors import (
    ConflictError,
    InternalError,
    OutOfStockError,
    PaymentError,
    ValidationError,
)
from storefront.repos.cart_repo import CartRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentProcessor
from storefront.utils.settings import ADMIN_EMAIL, CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Turns a user's cart into a paid order.

    The order is written and its stock reserved in one transaction that is
    committed only after a successful charge: a declined or failed charge
    rolls it back, leaving no order and the cart untouched. A charge whose
    order cannot be committed is refunded. The order is committed before the
    cart is cleared.
    """

    def __init__(
        self,
        db: Session,
        payment_processor: PaymentProcessor,
        notifier: NotificationService,
        lock_service: LockService,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.payment_processor = payment_processor
        self.notifier = notifier
        self.lock_service = lock_service

    def checkout(self, user: UserModel, form: dict) -> OrderModel:
        key = f"checkout:{user.id}:lock"
        owner = uuid.uuid4().hex

        if not self.lock_service.acquire(key, owner, CHECKOUT_LOCK_TTL_SECONDS):
            raise ConflictError("Checkout already in progress")

        try:
            return self._checkout(user, form)
        finally:
            try:
                self.lock_service.release(key, owner)
            except RedisError as e:
                # the lock expires on its own after the ttl
                logger.warning(f"Failed to release checkout lock for user {user.id}: {e}")

    def _checkout(self, user: UserModel, form: dict) -> OrderModel:
        cart = self.carts.get_cart_by_user(user.id)
        if cart is None or not cart.items:
            raise ValidationError("Cart is empty")

        shipping = order_ops.validate_shipping(form)
        self._check_availability(cart)

        # 1. snapshot + totals
        items = order_ops.snapshot_items(cart)
        subtotal = order_ops.calculate_subtotal(items)
        total = order_ops.calculate_total(items, cart.discount)
        amount = money(total)
        if amount <= ZERO:
            raise ValidationError("Order total must be greater than zero", {"total_amount": str(amount)})

        # 2. pending order + stock reservation, committed only once the charge succeeds
        now = datetime.now(timezone.utc)
        order = OrderModel(
            user_id=user.id,
            full_name=shipping["full_name"],
            email=shipping["email"] or user.email,
            phone_number=shipping["phone_number"],
            address=shipping["address"],
            city=shipping["city"],
            state=shipping["state"],
            zip=shipping["zip"],
            country=shipping["country"],
            items=items,
            payment_method=shipping["payment_method"],
            payment_status=order_ops.PENDING,
            order_status=order_ops.PENDING,
            subtotal=money(subtotal),
            discount=cart.discount,
            total_amount=amount,
            created_at=now,
            updated_at=now,
        )
        try:
            self.orders.create_order(order)
            self._reserve_stock(items)
        except Exception:
            self.orders.rollback()
            raise

        # 3. payment
        reference = uuid.uuid4().hex
        logger.info(f"Charging {amount} via {shipping['payment_method']} for user {user.id} ({reference})")
        try:
            result = self.payment_processor.charge(
                amount,
                shipping["payment_method"],
                {"nonce": form.get("payment_method_nonce"), "reference": reference},
            )
            if not result.success:
                logger.warning(f"Payment declined for user {user.id}: {result.message}")
                raise PaymentError(result.message or "Payment failed", {"reference": reference})
        except Exception:
            # drops the pending order and gives the reserved stock back
            self.orders.rollback()
            raise

        # 4. confirm the order
        order.payment_status = order_ops.PAID
        order.order_status = order_ops.PROCESSING
        order.transaction_id = result.transaction_id
        try:
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.exception(
                f"Order for user {user.id} not stored after charge {result.transaction_id} ({reference})"
            )
            refunded = self._refund(result.transaction_id, amount, reference)
            raise InternalError(
                "Order could not be saved, the payment is being reversed",
                {"reference": reference, "refunded": refunded},
            ) from e
        logger.info(f"Order {order.id} created for user {user.id}, total {amount}, transaction {result.transaction_id}")

        # 5. cart cleared only once the order is stored
        try:
            empty_cart(cart)
            self.carts.flush()
            if self.carts.update_cart_version(cart.id, cart.version) == 0:
                logger.warning(f"Cart {cart.id} changed during checkout of order {order.id}")
            self.carts.commit()
        except SQLAlchemyError:
            self.carts.rollback()
            logger.exception(f"Order {order.id} placed but cart {cart.id} could not be cleared")

        self._notify(order)
        return order

    def _reserve_stock(self, items):
        # conditional decrement: a buyer who got there first makes this fail
        for item in items:
            if self.products.decrement_stock(item.product_id, item.quantity) == 0:
                product = self.products.get_product(item.product_id, include_deleted=True)
                available = product.stock if product is not None else 0
                raise OutOfStockError(item.product_id, requested=item.quantity, available=available)

    def _refund(self, transaction_id: str, amount, reference: str) -> bool:
        try:
            result = self.payment_processor.refund(transaction_id, amount)
        except PaymentError as e:
            logger.error(f"Refund of {transaction_id} ({amount}) failed, reconcile manually ({reference}): {e.message}")
            return False

        if not result.success:
            logger.error(f"Refund of {transaction_id} ({amount}) rejected, reconcile manually ({reference}): {result.message}")
            return False

        logger.info(f"Charge {transaction_id} refunded ({reference})")
        return True

    def _check_availability(self, cart):
        products = self.products.get_products([i.product_id for i in cart.items], include_deleted=True)
        for item in cart.items:
            product = products.get(item.product_id)
            if product is None or product.deleted:
                raise ConflictError(
                    f"Product {item.product_id} is no longer available",
                    {"product_id": item.product_id},
                )
            if product.stock < item.quantity:
                raise OutOfStockError(product.id, requested=item.quantity, available=product.stock)

    def _notify(self, order: OrderModel):
        messages = []
        if order.email:
            messages.append((
                order.email,
                "Order Confirmation",
                f"Thank you for your order, {order.full_name}! Your order ID is {order.id}.",
            ))
        if ADMIN_EMAIL:
            messages.append((
                ADMIN_EMAIL,
                "New Order Received",
                f"A new order has been placed by {order.full_name}. Order ID: {order.id}.",
            ))

        for to, subject, body in messages:
            try:
                self.notifier.send(to, subject, body)
            except Exception as e:
                # the order is already placed, a lost email must not fail it
                logger.warning(f"Failed to queue notification for order {order.id}: {e}")
