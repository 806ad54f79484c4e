# storefront/services/order_service.py
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.user import UserModel
from storefront.domain import orders as order_ops
from storefront.domain.errors import ForbiddenError, NotFoundError
from storefront.repos.order_repo import OrderRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order queries and the admin-side status changes of an order.
    Orders are created by CheckoutService only.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def get_order(self, order_id: int, user: UserModel) -> OrderModel:
        order = self.repo.get_order(order_id, include_deleted=user.is_admin)

        if not order:
            raise NotFoundError("Order not found", {"order_id": order_id})

        if order.user_id != user.id and not user.is_admin:
            raise ForbiddenError("Access to this order is not allowed")

        return order

    def list_orders(self, user: UserModel, include_deleted: bool = False) -> list[OrderModel]:
        if include_deleted and not user.is_admin:
            raise ForbiddenError("Only admins can list deleted orders")
        return self.repo.list_orders(user_id=user.id, include_deleted=include_deleted)

    def update_status(self, order_id: int, status: str, actor: UserModel) -> OrderModel:
        self._require_admin(actor)
        order = self.get_order(order_id, actor)
        previous = order.order_status

        order_ops.transition(order, status, datetime.now(timezone.utc))
        self.repo.commit()

        logger.info(f"Order {order.id} status {previous} -> {order.order_status}")
        return order

    def add_note(self, order_id: int, note: str, actor: UserModel) -> OrderModel:
        self._require_admin(actor)
        order = self.get_order(order_id, actor)

        order_ops.append_note(order, note, datetime.now(timezone.utc))
        self.repo.commit()

        logger.info(f"Note added to order {order.id}")
        return order

    def soft_delete(self, order_id: int, actor: UserModel) -> OrderModel:
        self._require_admin(actor)
        order = self.get_order(order_id, actor)

        order.deleted = True
        order.updated_at = datetime.now(timezone.utc)
        self.repo.commit()

        logger.info(f"Order {order.id} soft-deleted by user {actor.id}")
        return order

    @staticmethod
    def _require_admin(user: UserModel):
        if not user.is_admin:
            raise ForbiddenError("Admin access required")
