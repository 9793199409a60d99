from .auth import User, SessionToken, VerificationCode
from .inventory import Product
from .customers import Client
from .sales import Sale, SaleItem
from .orders import Order, OrderItem

__all__ = [
    'User', 'SessionToken', 'VerificationCode',
    'Product',
    'Client',
    'Sale', 'SaleItem',
    'Order', 'OrderItem',
]
