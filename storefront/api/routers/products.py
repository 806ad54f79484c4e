# storefront/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.domain.schemas import ProductOut
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductOut])
def list_products(
    category: str | None = Query(None),
    q: str | None = Query(None, description="Search in name, description and category"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return CatalogService(db).list_products(category=category, search=q, page=page, limit=limit)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return CatalogService(db).get_product(product_id)
