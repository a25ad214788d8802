#import all models so SQLAlchemy registers them in Base.metadata

from checkout.data.models.cart import CartModel
from checkout.data.models.cart_item import CartItemModel
from checkout.data.models.order import OrderModel
from checkout.data.models.order_item import OrderItemModel
from checkout.data.models.order_activity import OrderActivityModel, OrderItemActivityModel
from checkout.data.models.order_status import OrderStatusModel
from checkout.data.models.product import ProductModel, ProviderModel

__all__ = [
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "OrderActivityModel",
    "OrderItemActivityModel",
    "OrderStatusModel",
    "ProductModel",
    "ProviderModel",
]
