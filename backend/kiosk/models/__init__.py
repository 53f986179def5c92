from .users import User, SessionToken
from .catalog import Product
from .carts import Cart, CartItem
from .orders import Order, OrderItem
from .petty_cash import PettyCashEntry

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Cart', 'CartItem',
    'Order', 'OrderItem',
    'PettyCashEntry',
]
