"""Database models package."""

from .user import User
from .menu import MenuCategory, Menu
from .sale import Sale, SaleItem
from .coupon import Coupon, CouponUsage
from .discount import Discount

__all__ = [
    'User',
    'MenuCategory',
    'Menu',
    'Sale',
    'SaleItem',
    'Coupon',
    'CouponUsage',
    'Discount',
]
