from .accounts import User, Customer
from .catalog import Product, ProductReview
from .orders import Order, OrderItem
from .settings import StoreSettings
from .documents import DocumentSequence

__all__ = [
    'User', 'Customer',
    'Product', 'ProductReview',
    'Order', 'OrderItem',
    'StoreSettings',
    'DocumentSequence',
]
