"""Exceptions shared across the salon package."""


class CouponDataError(Exception):
    """Stored coupon data cannot be evaluated (unknown type, bad time format)."""


class CouponRedemptionError(Exception):
    """The coupon could not be redeemed because a usage limit was hit.

    ``reason`` is the matching rejection reason value, ``usage_limit_reached``
    or ``customer_limit_reached``.
    """

    def __init__(self, message, reason='usage_limit_reached'):
        super().__init__(message)
        self.reason = reason


class PayloadError(ValueError):
    """Request payload failed validation. The message is safe to show to the caller."""
