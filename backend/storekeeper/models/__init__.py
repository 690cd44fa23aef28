from .tenancy import StoreOwner
from .auth import SessionToken
from .inventory import Product, StockMovement
from .customers import Customer
from .orders import Order, OrderLine
from .documents import PurchaseReturn, PurchaseReturnLine, DocumentSequence
from .security import SecurityEvent

__all__ = [
    'StoreOwner', 'SessionToken',
    'Product', 'StockMovement',
    'Customer',
    'Order', 'OrderLine',
    'PurchaseReturn', 'PurchaseReturnLine', 'DocumentSequence',
    'SecurityEvent',
]
