from .accounts import StoreAccount, AdminUser
from .catalog import Product, Coupon
from .orders import Order, OrderItem
from .verification import OtpVerification

__all__ = [
    'StoreAccount', 'AdminUser',
    'Product', 'Coupon',
    'Order', 'OrderItem',
    'OtpVerification',
]
