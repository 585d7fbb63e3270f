from .inventory import Product, StockTransaction
from .sales import Sale, SaleLine
from .purchases import Purchase, PurchaseLine
from .expenses import Expense
from .settings import Setting

__all__ = [
    'Product', 'StockTransaction',
    'Sale', 'SaleLine',
    'Purchase', 'PurchaseLine',
    'Expense',
    'Setting',
]
