from .catalog import (
    Category,
    Uom,
    Product,
    ProductPrice,
    ProductComponent,
    Location,
)
from .inventory import InventoryLedgerEntry, TRANSACTION_TYPES
from .sales import Session, CartItem, Order, OrderItem
from .finance import FinancialLedgerEntry, ENTRY_TYPES, ENTRY_CONCEPTS

__all__ = [
    'Category', 'Uom', 'Product', 'ProductPrice', 'ProductComponent', 'Location',
    'InventoryLedgerEntry', 'TRANSACTION_TYPES',
    'Session', 'CartItem', 'Order', 'OrderItem',
    'FinancialLedgerEntry', 'ENTRY_TYPES', 'ENTRY_CONCEPTS',
]
