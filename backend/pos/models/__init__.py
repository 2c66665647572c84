from .base import AuditMixin, OwnedMixin, WriteContext, SYSTEM_ACTOR_ID
from .auth import User, OwnerSetting, UserOtp
from .catalog import Outlet, Product, ProductVariant, ProductAddOn, Recipe, Supplier
from .inventory import Stock, StockMovement, PurchaseOrder, PurchaseOrderItem
from .orders import Order, OrderItem, OrderItemAddOn, OrderItemConsumption, OrderPayment, OrderPaymentItem
from .payments import PaymentMethod, UserPayment, UserIpaymu, UserTsm, IpaymuLog, TsmLog

__all__ = [
    'AuditMixin', 'OwnedMixin', 'WriteContext', 'SYSTEM_ACTOR_ID',
    'User', 'OwnerSetting', 'UserOtp',
    'Outlet', 'Product', 'ProductVariant', 'ProductAddOn', 'Recipe', 'Supplier',
    'Stock', 'StockMovement', 'PurchaseOrder', 'PurchaseOrderItem',
    'Order', 'OrderItem', 'OrderItemAddOn', 'OrderItemConsumption', 'OrderPayment', 'OrderPaymentItem',
    'PaymentMethod', 'UserPayment', 'UserIpaymu', 'UserTsm', 'IpaymuLog', 'TsmLog',
]
