# storefront/repos/order_repo.py
from sqlalchemy.orm import Session
from storefront.data.models.order import OrderModel


class OrderRepo:
    """Soft-deleted orders are hidden unless ``include_deleted`` is passed."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int, include_deleted: bool = False) -> OrderModel | None:
        order = self.db.get(OrderModel, order_id)
        if order is None or (order.deleted and not include_deleted):
            return None
        return order

    def list_orders(self, user_id: int | None = None, include_deleted: bool = False) -> list[OrderModel]:
        query = self.db.query(OrderModel)
        if user_id is not None:
            query = query.filter(OrderModel.user_id == user_id)
        if not include_deleted:
            query = query.filter(OrderModel.deleted.is_(False))
        return query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).all()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
