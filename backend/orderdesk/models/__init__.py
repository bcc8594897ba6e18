from .auth import User, SessionToken
from .customers import Customer
from .inventory import Product, ProductBatch
from .orders import Order, OrderItem
from .returns import Return, ReturnItem

__all__ = [
    'User', 'SessionToken',
    'Customer',
    'Product', 'ProductBatch',
    'Order', 'OrderItem',
    'Return', 'ReturnItem',
]
