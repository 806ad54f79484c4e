# storefront/repos/cart_repo.py
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.query(CartModel).filter(CartModel.user_id == user_id).one_or_none()

    def get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart:
            return cart

        try:
            cart = CartModel(user_id=user_id, discount=0, version=1)
            self.db.add(cart)
            self.db.commit()
        except IntegrityError:
            # another request created it first
            self.db.rollback()
            cart = self.get_cart_by_user(user_id)
        return cart

    def update_cart_version(self, cart_id: int, old_version: int) -> int:
        """Optimistic lock: UPDATE ... SET version = v + 1 WHERE id = ? AND version = v."""
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(version=old_version + 1, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    def flush(self):
        self.db.flush()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
