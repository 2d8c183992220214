from .auth import User, USER_ROLES
from .inventory import Product, StockMovement, MOVEMENT_TYPES
from .sales import Sale, SaleItem, PAYMENT_METHODS

__all__ = [
    'User', 'USER_ROLES',
    'Product', 'StockMovement', 'MOVEMENT_TYPES',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
]
