# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_lock_service, get_notifier, get_payment_processor
from storefront.data.database import get_db
from storefront.data.models.user import UserModel
from storefront.domain.errors import StorefrontError
from storefront.domain.schemas import CheckoutIn, CheckoutOut
from storefront.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=CheckoutOut)
def checkout(
    payload: CheckoutIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
    payment_processor=Depends(get_payment_processor),
    notifier=Depends(get_notifier),
    lock_service=Depends(get_lock_service),
):
    """
    Charges the cart and places the order.
    On any failure nothing is stored and the cart stays as it was; the error
    is answered as {success: false, message, code, details}.
    """
    svc = CheckoutService(db, payment_processor, notifier, lock_service)
    try:
        order = svc.checkout(user, payload.model_dump())
    except StorefrontError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message, "code": e.code, "details": e.details},
        )

    return {"success": True, "order_id": order.id, "total_amount": order.total_amount}
