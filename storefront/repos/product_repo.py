# storefront/repos/product_repo.py
from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel


class ProductRepo:
    """Soft-deleted products are hidden unless ``include_deleted`` is passed."""

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int, include_deleted: bool = False) -> ProductModel | None:
        product = self.db.get(ProductModel, product_id, populate_existing=True)
        if product is None or (product.deleted and not include_deleted):
            return None
        return product

    def get_products(self, product_ids, include_deleted: bool = False) -> dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        query = self.db.query(ProductModel).populate_existing().filter(ProductModel.id.in_(ids))
        if not include_deleted:
            query = query.filter(ProductModel.deleted.is_(False))
        return {p.id: p for p in query.all()}

    def list_products(
        self,
        include_deleted: bool = False,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> list[ProductModel]:
        query = self.db.query(ProductModel)
        if not include_deleted:
            query = query.filter(ProductModel.deleted.is_(False))
        if category:
            query = query.filter(ProductModel.category == category)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    ProductModel.name.ilike(pattern),
                    ProductModel.description.ilike(pattern),
                    ProductModel.category.ilike(pattern),
                )
            )
        return (
            query.order_by(ProductModel.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        # conditional decrement, stock never goes below zero
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
