from .auth import User, SessionToken
from .catalog import Category, Product
from .carts import Cart, CartItem, Wishlist, WishlistItem
from .orders import Order, OrderItem, ShippingInfo, PaymentInfo, ORDER_STATUSES, PAYMENT_STATUSES

__all__ = [
    'User', 'SessionToken',
    'Category', 'Product',
    'Cart', 'CartItem', 'Wishlist', 'WishlistItem',
    'Order', 'OrderItem', 'ShippingInfo', 'PaymentInfo',
    'ORDER_STATUSES', 'PAYMENT_STATUSES',
]
