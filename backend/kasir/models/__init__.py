from .tenancy import Vendor, VendorCategory, ReferenceSequence
from .catalog import Product
from .promotions import Promotion
from .customers import Customer
from .auth import User, SessionToken
from .sales import Transaction, TransactionLine
from .parking import SavedOrder

__all__ = [
    'Vendor', 'VendorCategory', 'ReferenceSequence',
    'Product',
    'Promotion',
    'Customer',
    'User', 'SessionToken',
    'Transaction', 'TransactionLine',
    'SavedOrder',
]
