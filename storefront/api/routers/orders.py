# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_admin
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.schemas import OrderNoteIn, OrderOut, OrderStatusIn
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=List[OrderOut])
def list_orders(
    include_deleted: bool = Query(False),
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).list_orders(user, include_deleted=include_deleted)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).get_order(order_id, user)


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: OrderStatusIn,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Moves the order along its status machine.
    Shipping assigns a tracking number.
    """
    return get_service(db).update_status(order_id, payload.status, admin)


@router.post("/{order_id}/notes", response_model=OrderOut)
def add_note(
    order_id: int,
    payload: OrderNoteIn,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_service(db).add_note(order_id, payload.note, admin)


@router.delete("/{order_id}", response_model=OrderOut)
def delete_order(
    order_id: int,
    admin: UserModel = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return get_service(db).soft_delete(order_id, admin)
