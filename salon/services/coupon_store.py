"""Database access for coupon evaluation and redemption."""

import logging
from sqlalchemy import func, or_
from salon.extensions import db
from salon.exceptions import CouponRedemptionError
from salon.models import Coupon, CouponUsage, Sale

logger = logging.getLogger(__name__)


class SQLAlchemyCouponStore:
    """Coupon lookups backed by the application database."""
    
    def get_by_code(self, code):
        return Coupon.query.filter(func.upper(Coupon.code) == code.upper()).first()
    
    def count_customer_usages(self, coupon_id, customer_id):
        return CouponUsage.query.filter_by(
            coupon_id=coupon_id,
            customer_id=customer_id
        ).count()
    
    def active_coupons(self, now):
        """Coupons switched on and inside their date window, best value first."""
        return Coupon.query.filter(
            Coupon.is_active == True,
            Coupon.valid_from <= now,
            Coupon.valid_until >= now
        ).order_by(Coupon.value.desc(), Coupon.created_at.desc()).all()


class SQLAlchemyCustomerHistory:
    """Completed-transaction counts from the sales table."""
    
    def count_completed_sales(self, customer_id):
        return Sale.query.filter_by(
            user_id=customer_id,
            payment_status='PAID'
        ).count()


def redeem_coupon(coupon, sale, customer_id=None):
    """Record one use of ``coupon`` on ``sale`` in the current transaction.

    The usage counter is bumped with a conditional UPDATE so two checkouts
    racing for the last redemption cannot both succeed. The UPDATE also
    locks the coupon row until commit, so the per-customer count taken after
    it sees every redemption committed before this one. The caller commits
    or rolls back.
    """
    updated = Coupon.query.filter(
        Coupon.id == coupon.id,
        or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit)
    ).update({Coupon.usage_count: Coupon.usage_count + 1}, synchronize_session=False)

    if not updated:
        raise CouponRedemptionError(f'Coupon {coupon.code} has reached its usage limit')

    if customer_id is not None and coupon.usage_limit_per_customer is not None:
        used = SQLAlchemyCouponStore().count_customer_usages(coupon.id, customer_id)
        if used >= coupon.usage_limit_per_customer:
            raise CouponRedemptionError(
                f'Customer {customer_id} has already used coupon {coupon.code} '
                f'{used} time(s)',
                reason='customer_limit_reached'
            )

    usage = CouponUsage(
        coupon_id=coupon.id,
        customer_id=customer_id,
        sale_id=sale.id
    )
    db.session.add(usage)
    logger.info(f'Coupon {coupon.code} redeemed on sale {sale.sale_number} (customer {customer_id})')
    return usage
