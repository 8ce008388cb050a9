from .users import User, SessionToken
from .catalog import Category, Item, WarehouseStock
from .commerce import CartLine, Negotiation, Order, OrderLine
from .rentals import Rental, Delivery
from .ledger import Transaction, WithdrawalRequest
from .communications import Notification
from .settings import AdminConfig

__all__ = [
    'User', 'SessionToken',
    'Category', 'Item', 'WarehouseStock',
    'CartLine', 'Negotiation', 'Order', 'OrderLine',
    'Rental', 'Delivery',
    'Transaction', 'WithdrawalRequest',
    'Notification',
    'AdminConfig',
]
