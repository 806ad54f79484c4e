# storefront/services/catalog_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.cart import line_subtotal, money, to_decimal
from storefront.domain.errors import NotFoundError
from storefront.repos.product_repo import ProductRepo


class CatalogService:
    """Read-only product catalog."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(
        self,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        products = self.repo.list_products(category=category, search=search, page=page, limit=limit)
        return [self._view(p) for p in products]

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", {"product_id": product_id})
        return self._view(product)

    @staticmethod
    def _view(p: ProductModel) -> Dict[str, Any]:
        return {
            "id": p.id,
            "name": p.name,
            "description": p.description,
            "image_url": p.image_url,
            "category": p.category,
            "price": money(p.price),
            "effective_price": money(line_subtotal(1, p.price, p.discount)),
            "stock": p.stock,
            "discount": to_decimal(p.discount),
            "is_featured": p.is_featured,
        }
