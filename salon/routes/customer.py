"""Customer account routes."""

from datetime import datetime
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from salon.models import Sale
from salon.services.coupon_validation import CouponValidator, ValidationRequest, HHMM
from salon.utils.decorators import customer_required
from salon.utils.payloads import parse_validation_request
from salon.utils.responses import coupon_validation_response, paginated

customer_bp = Blueprint('customer', __name__)


def _csv_arg(name):
    return tuple(v for v in request.args.get(name, '').split(',') if v)


@customer_bp.route('/coupons')
@login_required
@customer_required
def available_coupons():
    """Coupons the logged-in customer can use with the given cart context."""
    subtotal = request.args.get('subtotal', 0, type=int)
    weekday = request.args.get('weekday', type=int)
    time = request.args.get('time') or None
    if subtotal < 0:
        return jsonify({'error': 'subtotal must be at least 0'}), 400
    if weekday is not None and not 0 <= weekday <= 6:
        return jsonify({'error': 'weekday must be between 0 and 6'}), 400
    if time is not None and not HHMM.match(time):
        return jsonify({'error': 'time must be in HH:MM format'}), 400
    
    context = ValidationRequest(
        code='',
        subtotal=subtotal,
        customer_id=current_user.id,
        menu_ids=_csv_arg('menu_ids'),
        categories=_csv_arg('category_ids'),
        weekday=weekday,
        time=time
    )
    
    now = datetime.now()
    validator = CouponValidator(clock=lambda: now)
    coupons = []
    for coupon in validator.store.active_coupons(now):
        if not validator.check(coupon, context).valid:
            continue
        data = coupon.summary()
        data.update({
            'minimum_amount': coupon.minimum_amount,
            'applicable_menu_ids': list(coupon.applicable_menu_ids or []),
            'applicable_category_ids': list(coupon.applicable_category_ids or []),
            'valid_until': coupon.valid_until.isoformat(),
            'conditions': coupon.condition_labels(),
        })
        coupons.append(data)
    
    return jsonify({'coupons': coupons})


@customer_bp.route('/coupons/validate', methods=['POST'])
@login_required
@customer_required
def validate_coupon():
    """Validate a coupon code for the logged-in customer."""
    return coupon_validation_response(
        lambda: parse_validation_request(request.get_json(silent=True), customer_id=current_user.id)
    )


@customer_bp.route('/sales')
@login_required
@customer_required
def sales():
    """Customer's visit history."""
    page = request.args.get('page', 1, type=int)
    
    pagination = Sale.query.filter_by(
        user_id=current_user.id
    ).order_by(Sale.sale_date.desc(), Sale.sale_time.desc()).paginate(
        page=page, per_page=current_app.config['ITEMS_PER_PAGE'], error_out=False
    )
    
    return jsonify(paginated(pagination, [s.to_dict(with_items=True) for s in pagination.items]))
