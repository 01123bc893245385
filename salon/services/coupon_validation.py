"""Coupon eligibility and discount evaluation.

A coupon code and an order context go in; either a rejection or a discount
comes out. The eligibility checks are an ordered tuple of :class:`Rule`
objects and the first one that fails decides the rejection, so callers
always get the single most relevant reason.

Evaluation never writes. Validation can run every time the cart changes;
the usage counter is only touched by
:func:`salon.services.coupon_store.redeem_coupon` when a sale is committed.
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Callable, Optional, Tuple

from salon.exceptions import CouponDataError
from salon.services.coupon_store import SQLAlchemyCouponStore, SQLAlchemyCustomerHistory

logger = logging.getLogger(__name__)

HHMM = re.compile(r'^\d{2}:\d{2}$')


class RejectionReason(enum.Enum):
    """Why a coupon was refused. One member per eligibility check."""
    NOT_FOUND = 'not_found'
    DISABLED = 'disabled'
    NOT_YET_ACTIVE = 'not_yet_active'
    EXPIRED = 'expired'
    USAGE_LIMIT_REACHED = 'usage_limit_reached'
    CUSTOMER_LIMIT_REACHED = 'customer_limit_reached'
    FIRST_TIME_ONLY = 'first_time_only'
    RETURNING_ONLY = 'returning_only'
    BELOW_MINIMUM = 'below_minimum'
    MENU_NOT_ELIGIBLE = 'menu_not_eligible'
    CATEGORY_NOT_ELIGIBLE = 'category_not_eligible'
    WEEKDAY_NOT_ELIGIBLE = 'weekday_not_eligible'
    OUTSIDE_TIME_WINDOW = 'outside_time_window'


@dataclass(frozen=True)
class MenuItem:
    """A priced cart line, used to discount only the eligible part of an order."""
    menu_id: str
    category_id: Optional[str]
    price: int


@dataclass(frozen=True)
class ValidationRequest:
    code: str
    subtotal: int
    customer_id: Optional[int] = None
    menu_ids: Tuple = ()
    categories: Tuple = ()
    weekday: Optional[int] = None  # 0=Sunday .. 6=Saturday
    time: Optional[str] = None  # HH:MM
    menu_items: Tuple[MenuItem, ...] = ()
    # True when menu_ids/categories are the complete order, so an empty list means nothing is eligible
    has_cart_context: bool = False


@dataclass(frozen=True)
class CouponValidationSuccess:
    coupon: dict
    discount_amount: int
    message: str
    applicable_subtotal: Optional[int] = None
    applicable_menu_ids: Optional[Tuple] = None
    valid: bool = field(default=True, init=False)

    def to_dict(self):
        data = {
            'valid': True,
            'coupon': self.coupon,
            'discount_amount': self.discount_amount,
            'message': self.message,
        }
        if self.applicable_subtotal is not None:
            data['applicable_subtotal'] = self.applicable_subtotal
            data['applicable_menu_ids'] = list(self.applicable_menu_ids or ())
        return data


@dataclass(frozen=True)
class CouponValidationFailure:
    reason: RejectionReason
    error: str
    valid: bool = field(default=False, init=False)

    def to_dict(self):
        return {'valid': False, 'error': self.error, 'reason': self.reason.value}


@dataclass(frozen=True)
class Rule:
    """One eligibility check: ``passes(coupon, evaluation)`` and the message used when it fails."""
    reason: RejectionReason
    passes: Callable
    message: Callable


def _keys(values):
    return {str(v) for v in values or ()}


class Evaluation:
    """State for a single evaluation: the request, the instant and lazily read counts."""

    def __init__(self, request, now, store, history):
        self.request = request
        self.now = now
        self.store = store
        self.history = history

    @property
    def customer_id(self):
        return self.request.customer_id

    @property
    def weekday(self):
        if self.request.weekday is not None:
            return self.request.weekday
        return self.now.isoweekday() % 7

    @property
    def time(self):
        return self.request.time or self.now.strftime('%H:%M')

    @cached_property
    def completed_sales(self):
        return self.history.count_completed_sales(self.customer_id)

    def customer_usages(self, coupon):
        return self.store.count_customer_usages(coupon.id, self.customer_id)


def _within_usage_limit(coupon, ev):
    return coupon.usage_limit is None or coupon.usage_count < coupon.usage_limit


def _within_customer_limit(coupon, ev):
    if ev.customer_id is None or coupon.usage_limit_per_customer is None:
        return True
    return ev.customer_usages(coupon) < coupon.usage_limit_per_customer


def _first_time_customer(coupon, ev):
    if ev.customer_id is None or not coupon.only_first_time:
        return True
    return ev.completed_sales == 0


def _returning_customer(coupon, ev):
    if ev.customer_id is None or not coupon.only_returning:
        return True
    return ev.completed_sales >= 1


def _meets_minimum(coupon, ev):
    return coupon.minimum_amount is None or ev.request.subtotal >= coupon.minimum_amount


def _overlaps(restriction, requested, has_cart_context=False):
    # Without cart context an empty list means the caller has no item
    # information yet (e.g. a pre-cart check), so the restriction is not applied.
    restriction = _keys(restriction)
    requested = _keys(requested)
    if not restriction:
        return True
    if not requested:
        return not has_cart_context
    return bool(restriction & requested)


def _menu_eligible(coupon, ev):
    return _overlaps(coupon.applicable_menu_ids, ev.request.menu_ids, ev.request.has_cart_context)


def _category_eligible(coupon, ev):
    return _overlaps(coupon.applicable_category_ids, ev.request.categories, ev.request.has_cart_context)


def _weekday_eligible(coupon, ev):
    if not coupon.applicable_weekdays:
        return True
    return ev.weekday in {int(d) for d in coupon.applicable_weekdays}


def _within_time_window(coupon, ev):
    if not (coupon.start_time and coupon.end_time):
        return True
    if not (HHMM.match(coupon.start_time) and HHMM.match(coupon.end_time)):
        raise CouponDataError(
            f'Coupon {coupon.code} has a malformed time window '
            f'{coupon.start_time!r}-{coupon.end_time!r}'
        )
    return coupon.start_time <= ev.time <= coupon.end_time


RULES = (
    Rule(RejectionReason.DISABLED,
         lambda coupon, ev: bool(coupon.is_active),
         lambda coupon: 'This coupon is currently disabled'),
    Rule(RejectionReason.NOT_YET_ACTIVE,
         lambda coupon, ev: ev.now >= coupon.valid_from,
         lambda coupon: f'This coupon is valid from {coupon.valid_from:%Y-%m-%d}'),
    Rule(RejectionReason.EXPIRED,
         lambda coupon, ev: ev.now <= coupon.valid_until,
         lambda coupon: 'This coupon has expired'),
    Rule(RejectionReason.USAGE_LIMIT_REACHED,
         _within_usage_limit,
         lambda coupon: 'This coupon has reached its usage limit'),
    Rule(RejectionReason.CUSTOMER_LIMIT_REACHED,
         _within_customer_limit,
         lambda coupon: 'You have already used this coupon the maximum number of times'),
    Rule(RejectionReason.FIRST_TIME_ONLY,
         _first_time_customer,
         lambda coupon: 'This coupon is for first-time customers only'),
    Rule(RejectionReason.RETURNING_ONLY,
         _returning_customer,
         lambda coupon: 'This coupon is for returning customers only'),
    Rule(RejectionReason.BELOW_MINIMUM,
         _meets_minimum,
         lambda coupon: f'This coupon requires a purchase of ¥{coupon.minimum_amount:,} or more'),
    Rule(RejectionReason.MENU_NOT_ELIGIBLE,
         _menu_eligible,
         lambda coupon: 'Your order does not include an eligible menu'),
    Rule(RejectionReason.CATEGORY_NOT_ELIGIBLE,
         _category_eligible,
         lambda coupon: 'Your order does not include an eligible category'),
    Rule(RejectionReason.WEEKDAY_NOT_ELIGIBLE,
         _weekday_eligible,
         lambda coupon: 'This coupon cannot be used on this day'),
    Rule(RejectionReason.OUTSIDE_TIME_WINDOW,
         _within_time_window,
         lambda coupon: f'This coupon can only be used between {coupon.start_time} and {coupon.end_time}'),
)


def discount_base(coupon, request):
    """Amount the discount applies to and the eligible menu ids.

    With a menu/category restriction and priced cart lines, only the lines
    matching either restriction count. Otherwise the whole subtotal does and
    no menu ids are reported.
    """
    menus = _keys(coupon.applicable_menu_ids)
    categories = _keys(coupon.applicable_category_ids)
    if not (menus or categories):
        return request.subtotal, None
    if not request.menu_items:
        return request.subtotal, ()

    base = 0
    eligible = []
    for item in request.menu_items:
        if str(item.menu_id) in menus or str(item.category_id) in categories:
            base += item.price
            eligible.append(item.menu_id)
    return base, tuple(eligible)


class CouponValidator:
    """Evaluates coupon codes against an order context.

    ``store`` needs ``get_by_code`` and ``count_customer_usages``;
    ``history`` needs ``count_completed_sales``; ``clock`` returns the
    current local datetime. All three default to the database and
    ``datetime.now``.
    """

    def __init__(self, store=None, history=None, clock=None, rules=RULES):
        self.store = store or SQLAlchemyCouponStore()
        self.history = history or SQLAlchemyCustomerHistory()
        self.clock = clock or datetime.now
        self.rules = rules

    def evaluate(self, request):
        """Look the code up and run every check against it."""
        code = request.code.strip().upper()
        coupon = self.store.get_by_code(code)
        if coupon is None:
            logger.debug(f'Coupon {code} rejected: not found')
            return CouponValidationFailure(RejectionReason.NOT_FOUND, 'Coupon not found')
        return self.check(coupon, request)

    def check(self, coupon, request, now=None):
        """Run the eligibility checks and compute the discount for a loaded coupon."""
        ev = Evaluation(request, now or self.clock(), self.store, self.history)
        try:
            for rule in self.rules:
                if not rule.passes(coupon, ev):
                    logger.debug(f'Coupon {coupon.code} rejected: {rule.reason.value}')
                    return CouponValidationFailure(rule.reason, rule.message(coupon))
            base, eligible_menu_ids = discount_base(coupon, request)
        except (TypeError, ValueError) as exc:
            raise CouponDataError(f'Coupon {coupon.code} has malformed data: {exc}') from exc

        discount = coupon.calculate_discount(base)
        return CouponValidationSuccess(
            coupon=coupon.summary(),
            discount_amount=discount,
            message=coupon.discount_message(discount),
            applicable_subtotal=base if eligible_menu_ids is not None else None,
            applicable_menu_ids=eligible_menu_ids,
        )
