#storefront/api/routers/cart.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import (
    CartOut,
    CartTotalsOut,
    CouponAppliedOut,
    CouponIn,
    ItemIn,
    QuantityIn,
    SyncIn,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user.id)


@router.delete("", response_model=CartOut)
def empty_cart(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).empty_cart(user.id)


@router.get("/totals", response_model=CartTotalsOut)
def get_totals(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_service(db).get_totals(user.id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).add_item(user.id, payload.product_id, payload.quantity)


@router.put("/items/{product_id}", response_model=CartOut)
def set_quantity(
    product_id: int,
    payload: QuantityIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).set_quantity(user.id, product_id, payload.quantity)


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(
    product_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).remove_item(user.id, product_id)


@router.post("/sync", response_model=CartOut)
def sync_cart(
    payload: SyncIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = [(i.product_id, i.quantity) for i in payload.items]
    return get_service(db).sync(user.id, items)


@router.post("/coupon", response_model=CouponAppliedOut)
def apply_coupon(
    payload: CouponIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).apply_coupon(user.id, payload.code)
