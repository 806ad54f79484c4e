#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.product import ProductModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.coupon import CouponModel, CouponUsageModel
from storefront.data.models.order import OrderModel, OrderItemModel

__all__ = [
    "UserModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "CouponModel",
    "CouponUsageModel",
    "OrderModel",
    "OrderItemModel",
]
