"""Admin back-office routes."""

import logging
from datetime import datetime, date
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from salon.extensions import db
from salon.exceptions import CouponDataError, CouponRedemptionError, PayloadError
from salon.models import User, MenuCategory, Menu, Sale, SaleItem, Coupon, CouponUsage, Discount
from salon.services.coupon_store import redeem_coupon
from salon.services.coupon_validation import CouponValidator, MenuItem, ValidationRequest
from salon.services.reports import daily_report, monthly_report
from salon.utils.decorators import admin_required
from salon.utils.payloads import (parse_coupon_payload, check_coupon_consistency,
                                  parse_sale_payload, parse_validation_request,
                                  parse_category_payload, parse_menu_payload,
                                  parse_discount_payload, check_discount_consistency)
from salon.utils.responses import coupon_validation_response, paginated

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

# Stored values the cross-field coupon checks need when only part of a coupon is updated
CONSISTENCY_FIELDS = ('type', 'value', 'valid_from', 'valid_until',
                      'only_first_time', 'only_returning', 'start_time', 'end_time')


# --- Coupons ---
@admin_bp.route('/coupons')
@login_required
@admin_required
def coupons():
    """Coupon list, active and unexpired only unless asked otherwise."""
    include_inactive = request.args.get('include_inactive') == 'true'
    include_expired = request.args.get('include_expired') == 'true'

    query = Coupon.query
    if not include_inactive:
        query = query.filter_by(is_active=True)
    if not include_expired:
        query = query.filter(Coupon.valid_until >= datetime.now())

    result = []
    for coupon in query.order_by(Coupon.created_at.desc()).all():
        data = coupon.to_dict()
        data['usage_records'] = coupon.usages.count()
        result.append(data)

    return jsonify({'coupons': result})


@admin_bp.route('/coupons', methods=['POST'])
@login_required
@admin_required
def add_coupon():
    """Create a coupon."""
    try:
        fields = parse_coupon_payload(request.get_json(silent=True))
        check_coupon_consistency(fields)
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    if Coupon.query.filter_by(code=fields['code']).first():
        return jsonify({'error': 'This coupon code is already in use'}), 400

    coupon = Coupon(**fields)
    db.session.add(coupon)
    db.session.commit()

    logger.info(f'Coupon {coupon.code} created by user {current_user.id}')
    return jsonify(coupon.to_dict()), 201


@admin_bp.route('/coupons/<int:coupon_id>')
@login_required
@admin_required
def coupon_detail(coupon_id):
    """Coupon with its most recent usages."""
    coupon = Coupon.query.get_or_404(coupon_id)

    usages = coupon.usages.order_by(CouponUsage.used_at.desc()).limit(50).all()

    data = coupon.to_dict()
    data.update({
        'usages': [u.to_dict() for u in usages],
        'usage_records': coupon.usages.count(),
        'sale_count': coupon.sales.count(),
        'conditions': coupon.condition_labels(),
    })
    return jsonify(data)


@admin_bp.route('/coupons/<int:coupon_id>', methods=['PUT'])
@login_required
@admin_required
def edit_coupon(coupon_id):
    """Update some or all fields of a coupon."""
    coupon = Coupon.query.get_or_404(coupon_id)

    try:
        fields = parse_coupon_payload(request.get_json(silent=True), partial=True)
        merged = {key: getattr(coupon, key) for key in CONSISTENCY_FIELDS}
        merged.update(fields)
        check_coupon_consistency(merged)
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    new_code = fields.get('code')
    if new_code and new_code != coupon.code and Coupon.query.filter_by(code=new_code).first():
        return jsonify({'error': 'This coupon code is already in use'}), 400

    for key, value in fields.items():
        setattr(coupon, key, value)
    db.session.commit()

    logger.info(f'Coupon {coupon.code} updated by user {current_user.id}: {sorted(fields)}')
    return jsonify(coupon.to_dict())


@admin_bp.route('/coupons/<int:coupon_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_coupon(coupon_id):
    """Delete a coupon, or only disable it when sales reference it."""
    coupon = Coupon.query.get_or_404(coupon_id)

    if coupon.sales.count() > 0:
        coupon.is_active = False
        db.session.commit()
        logger.info(f'Coupon {coupon.code} disabled instead of deleted (used on sales)')
        return jsonify({
            'deleted': False,
            'message': 'Coupon disabled. It has sales history and cannot be deleted.'
        })

    db.session.delete(coupon)
    db.session.commit()

    logger.info(f'Coupon {coupon.code} deleted by user {current_user.id}')
    return jsonify({'deleted': True, 'message': 'Coupon deleted.'})


@admin_bp.route('/coupons/<int:coupon_id>/toggle', methods=['POST'])
@login_required
@admin_required
def toggle_coupon(coupon_id):
    """Toggle coupon active status."""
    coupon = Coupon.query.get_or_404(coupon_id)
    coupon.is_active = not coupon.is_active
    db.session.commit()

    return jsonify({'id': coupon.id, 'is_active': coupon.is_active})


@admin_bp.route('/coupons/validate', methods=['POST'])
@login_required
@admin_required
def validate_coupon():
    """Validate a coupon at the counter, optionally for a known customer."""
    return coupon_validation_response(
        lambda: parse_validation_request(request.get_json(silent=True), allow_customer_id=True)
    )


# --- POS Sales ---
@admin_bp.route('/sales')
@login_required
@admin_required
def sales():
    """Sales history, optionally limited to a date range."""
    page = request.args.get('page', 1, type=int)

    query = Sale.query
    try:
        start_date = request.args.get('start_date')
        end_date = request.args.get('end_date')
        if start_date:
            query = query.filter(Sale.sale_date >= date.fromisoformat(start_date))
        if end_date:
            query = query.filter(Sale.sale_date <= date.fromisoformat(end_date))
    except ValueError:
        return jsonify({'error': 'Dates must be in YYYY-MM-DD format'}), 400

    pagination = query.order_by(Sale.sale_date.desc(), Sale.sale_time.desc()).paginate(
        page=page, per_page=current_app.config['ITEMS_PER_PAGE'], error_out=False
    )

    return jsonify(paginated(pagination, [s.to_dict() for s in pagination.items]))


@admin_bp.route('/sales/<sale_number>')
@login_required
@admin_required
def sale_detail(sale_number):
    sale = Sale.query.filter_by(sale_number=sale_number).first_or_404()
    return jsonify(sale.to_dict(with_items=True))


def _resolve_items(items):
    """Fill names and categories of menu lines from the catalogue."""
    for item in items:
        if item['menu_id'] is not None:
            menu = Menu.query.get(item['menu_id'])
            if menu is None:
                raise PayloadError(f"Menu {item['menu_id']} not found")
            item['item_name'] = item['item_name'] or menu.name
            if item['category_id'] is None:
                item['category_id'] = menu.category_id
        if not item['item_name']:
            raise PayloadError('item_name is required')
    return items


def _coupon_request(payload, subtotal):
    """Validation context for a coupon presented at checkout."""
    menu_lines = [i for i in payload['items'] if i['item_type'] == 'MENU' and i['menu_id']]
    return ValidationRequest(
        code=payload['coupon_code'],
        subtotal=subtotal,
        customer_id=payload['customer_id'],
        menu_ids=tuple(i['menu_id'] for i in menu_lines),
        categories=tuple(i['category_id'] for i in payload['items'] if i['category_id']),
        weekday=payload['sale_date'].isoweekday() % 7,
        time=payload['sale_time'],
        menu_items=tuple(
            MenuItem(i['menu_id'], i['category_id'], i['unit_price'] * i['quantity'])
            for i in menu_lines
        ),
        has_cart_context=True,
    )


@admin_bp.route('/sales', methods=['POST'])
@login_required
@admin_required
def create_sale():
    """Register a checkout, redeeming the coupon if one is presented."""
    try:
        payload = parse_sale_payload(request.get_json(silent=True))
        _resolve_items(payload['items'])
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    customer_id = payload['customer_id']
    if customer_id is not None and User.query.get(customer_id) is None:
        return jsonify({'error': 'Customer not found'}), 400

    subtotal = sum(i['unit_price'] * i['quantity'] for i in payload['items'])

    discount_amount = payload['discount_amount']
    discount = None
    if payload['discount_id'] is not None:
        if discount_amount:
            return jsonify({'error': 'Send either discount_id or discount_amount, not both'}), 400
        discount = Discount.query.get(payload['discount_id'])
        if discount is None or not discount.is_active:
            return jsonify({'error': 'Discount not found'}), 400
        discount_amount = discount.calculate_discount(subtotal)

    # Re-validate the coupon server side, its discount is never taken from the client
    coupon = None
    coupon_discount = 0
    if payload['coupon_code']:
        try:
            result = CouponValidator().evaluate(_coupon_request(payload, subtotal))
        except (SQLAlchemyError, CouponDataError):
            logger.exception(f"Coupon validation failed for sale ({payload['coupon_code']!r})")
            db.session.rollback()
            return jsonify({'error': 'Failed to validate coupon'}), 500
        if not result.valid:
            return jsonify({'error': result.error, 'reason': result.reason.value}), 400
        coupon = Coupon.query.get(result.coupon['id'])
        coupon_discount = result.discount_amount

    total = max(0, subtotal - discount_amount - coupon_discount)
    tax_rate = current_app.config['TAX_RATE']

    sale = Sale(
        sale_number=Sale.generate_sale_number(payload['sale_date']),
        user_id=customer_id,
        customer_name=payload['customer_name'],
        subtotal=subtotal,
        tax_amount=Sale.included_tax(total, tax_rate),
        tax_rate=tax_rate,
        discount_amount=discount_amount,
        discount_id=discount.id if discount else None,
        coupon_id=coupon.id if coupon else None,
        coupon_discount=coupon_discount,
        total_amount=total,
        payment_method=payload['payment_method'],
        payment_status='PAID',
        sale_date=payload['sale_date'],
        sale_time=payload['sale_time'],
        note=payload['note'],
        created_by=current_user.id
    )
    db.session.add(sale)
    db.session.flush()

    if coupon:
        try:
            redeem_coupon(coupon, sale, customer_id)
        except CouponRedemptionError as e:
            db.session.rollback()
            return jsonify({'error': str(e), 'reason': e.reason}), 409

    for index, item in enumerate(payload['items']):
        db.session.add(SaleItem(
            sale_id=sale.id,
            item_type=item['item_type'],
            menu_id=item['menu_id'],
            category_id=item['category_id'],
            item_name=item['item_name'],
            quantity=item['quantity'],
            unit_price=item['unit_price'],
            subtotal=item['unit_price'] * item['quantity'],
            order_index=index
        ))

    db.session.commit()
    logger.info(f'Sale {sale.sale_number} registered: total ¥{total:,}')
    return jsonify(sale.to_dict(with_items=True)), 201


# --- Menu categories ---
def _category_name_taken(name, exclude_id=None):
    query = MenuCategory.query.filter(db.func.lower(MenuCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(MenuCategory.id != exclude_id)
    return query.first() is not None


@admin_bp.route('/categories')
@login_required
@admin_required
def categories():
    """Menu categories with their menu counts."""
    query = MenuCategory.query
    if request.args.get('include_inactive') != 'true':
        query = query.filter_by(is_active=True)

    result = []
    for category in query.order_by(MenuCategory.display_order, MenuCategory.id).all():
        data = category.to_dict()
        data['menu_count'] = category.menus.count()
        result.append(data)
    return jsonify({'categories': result})


@admin_bp.route('/categories', methods=['POST'])
@login_required
@admin_required
def add_category():
    try:
        fields = parse_category_payload(request.get_json(silent=True))
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    if _category_name_taken(fields['name']):
        return jsonify({'error': 'A category with this name already exists'}), 400

    category = MenuCategory(**fields)
    category.generate_slug()
    db.session.add(category)
    db.session.commit()

    logger.info(f'Category {category.slug} created by user {current_user.id}')
    return jsonify(category.to_dict()), 201


@admin_bp.route('/categories/<int:category_id>')
@login_required
@admin_required
def category_detail(category_id):
    category = MenuCategory.query.get_or_404(category_id)
    data = category.to_dict()
    data['menus'] = [m.to_dict() for m in category.menus.order_by(Menu.display_order, Menu.id)]
    return jsonify(data)


@admin_bp.route('/categories/<int:category_id>', methods=['PUT'])
@login_required
@admin_required
def edit_category(category_id):
    """Update a category. The slug stays as created."""
    category = MenuCategory.query.get_or_404(category_id)

    try:
        fields = parse_category_payload(request.get_json(silent=True), partial=True)
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    if 'name' in fields and _category_name_taken(fields['name'], exclude_id=category.id):
        return jsonify({'error': 'A category with this name already exists'}), 400

    for key, value in fields.items():
        setattr(category, key, value)
    db.session.commit()

    return jsonify(category.to_dict())


@admin_bp.route('/categories/<int:category_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_category(category_id):
    """Delete a category without active menus, or disable it when sales reference it."""
    category = MenuCategory.query.get_or_404(category_id)

    if category.menus.filter_by(is_active=True).count() > 0:
        return jsonify({'error': 'This category has active menus and cannot be deleted'}), 400

    menu_ids = [m.id for m in category.menus]
    referenced = SaleItem.query.filter(
        (SaleItem.category_id == category.id) |
        (SaleItem.menu_id.in_(menu_ids))
    ).first() is not None
    if referenced:
        category.is_active = False
        db.session.commit()
        return jsonify({
            'deleted': False,
            'message': 'Category disabled. It has sales history and cannot be deleted.'
        })

    db.session.delete(category)
    db.session.commit()

    logger.info(f'Category {category.slug} deleted by user {current_user.id}')
    return jsonify({'deleted': True, 'message': 'Category deleted.'})


# --- Menus ---
@admin_bp.route('/menus')
@login_required
@admin_required
def menus():
    """Menus, optionally for one category."""
    query = Menu.query.join(MenuCategory)
    category_id = request.args.get('category_id', type=int)
    if category_id:
        query = query.filter(Menu.category_id == category_id)
    if request.args.get('include_inactive') != 'true':
        query = query.filter(Menu.is_active == True)

    result = []
    for menu in query.order_by(MenuCategory.display_order, Menu.display_order, Menu.id).all():
        data = menu.to_dict()
        data['category'] = {'id': menu.category.id, 'name': menu.category.name}
        result.append(data)
    return jsonify({'menus': result})


@admin_bp.route('/menus', methods=['POST'])
@login_required
@admin_required
def add_menu():
    try:
        fields = parse_menu_payload(request.get_json(silent=True))
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    if MenuCategory.query.get(fields['category_id']) is None:
        return jsonify({'error': 'Category not found'}), 400

    menu = Menu(**fields)
    menu.generate_slug()
    db.session.add(menu)
    db.session.commit()

    logger.info(f'Menu {menu.slug} created by user {current_user.id}')
    return jsonify(menu.to_dict()), 201


@admin_bp.route('/menus/<int:menu_id>')
@login_required
@admin_required
def menu_detail(menu_id):
    menu = Menu.query.get_or_404(menu_id)
    data = menu.to_dict()
    data['category'] = {'id': menu.category.id, 'name': menu.category.name}
    return jsonify(data)


@admin_bp.route('/menus/<int:menu_id>', methods=['PUT'])
@login_required
@admin_required
def edit_menu(menu_id):
    menu = Menu.query.get_or_404(menu_id)

    try:
        fields = parse_menu_payload(request.get_json(silent=True), partial=True)
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    if 'category_id' in fields and MenuCategory.query.get(fields['category_id']) is None:
        return jsonify({'error': 'Category not found'}), 400

    for key, value in fields.items():
        setattr(menu, key, value)
    db.session.commit()

    logger.info(f'Menu {menu.slug} updated by user {current_user.id}: {sorted(fields)}')
    return jsonify(menu.to_dict())


@admin_bp.route('/menus/<int:menu_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_menu(menu_id):
    """Delete a menu, or only disable it when sale lines reference it."""
    menu = Menu.query.get_or_404(menu_id)

    if SaleItem.query.filter_by(menu_id=menu.id).first():
        menu.is_active = False
        db.session.commit()
        return jsonify({
            'deleted': False,
            'message': 'Menu disabled. It has sales history and cannot be deleted.'
        })

    db.session.delete(menu)
    db.session.commit()

    logger.info(f'Menu {menu.slug} deleted by user {current_user.id}')
    return jsonify({'deleted': True, 'message': 'Menu deleted.'})


# --- Counter discounts ---
@admin_bp.route('/discounts')
@login_required
@admin_required
def discounts():
    query = Discount.query
    if request.args.get('include_inactive') != 'true':
        query = query.filter_by(is_active=True)
    return jsonify({
        'discounts': [d.to_dict() for d in query.order_by(Discount.display_order, Discount.id)]
    })


@admin_bp.route('/discounts', methods=['POST'])
@login_required
@admin_required
def add_discount():
    try:
        fields = parse_discount_payload(request.get_json(silent=True))
        check_discount_consistency(fields)
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    discount = Discount(**fields)
    db.session.add(discount)
    db.session.commit()

    logger.info(f'Discount {discount.name} created by user {current_user.id}')
    return jsonify(discount.to_dict()), 201


@admin_bp.route('/discounts/<int:discount_id>', methods=['PUT'])
@login_required
@admin_required
def edit_discount(discount_id):
    discount = Discount.query.get_or_404(discount_id)

    try:
        fields = parse_discount_payload(request.get_json(silent=True), partial=True)
        check_discount_consistency({'type': discount.type, 'value': discount.value, **fields})
    except PayloadError as e:
        return jsonify({'error': str(e)}), 400

    for key, value in fields.items():
        setattr(discount, key, value)
    db.session.commit()

    return jsonify(discount.to_dict())


@admin_bp.route('/discounts/<int:discount_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_discount(discount_id):
    """Delete a discount, or only disable it when sales reference it."""
    discount = Discount.query.get_or_404(discount_id)

    if discount.sales.count() > 0:
        discount.is_active = False
        db.session.commit()
        return jsonify({
            'deleted': False,
            'message': 'Discount disabled. It has sales history and cannot be deleted.'
        })

    db.session.delete(discount)
    db.session.commit()

    logger.info(f'Discount {discount.name} deleted by user {current_user.id}')
    return jsonify({'deleted': True, 'message': 'Discount deleted.'})


# --- Reports ---
@admin_bp.route('/reports/daily')
@login_required
@admin_required
def report_daily():
    """Daily sales report, today unless ``date`` is given."""
    try:
        day = date.fromisoformat(request.args['date']) if request.args.get('date') else date.today()
    except ValueError:
        return jsonify({'error': 'date must be in YYYY-MM-DD format'}), 400

    return jsonify(daily_report(day))


@admin_bp.route('/reports/monthly')
@login_required
@admin_required
def report_monthly():
    """Monthly sales report, the current month unless ``year``/``month`` are given."""
    today = date.today()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    if not 1 <= month <= 12 or not 1 <= year <= 9999:
        return jsonify({'error': 'year or month out of range'}), 400

    return jsonify(monthly_report(year, month))


# --- Customers ---
@admin_bp.route('/customers')
@login_required
@admin_required
def customers():
    """Customer list with visit counts."""
    page = request.args.get('page', 1, type=int)
    search = request.args.get('search', '')

    query = User.query.filter_by(role='customer')
    if search:
        query = query.filter(
            (User.name.ilike(f'%{search}%')) |
            (User.email.ilike(f'%{search}%')) |
            (User.phone.ilike(f'%{search}%'))
        )

    pagination = query.order_by(User.created_at.desc()).paginate(
        page=page, per_page=current_app.config['ITEMS_PER_PAGE'], error_out=False
    )

    items = []
    for user in pagination.items:
        data = user.to_dict()
        data['visit_count'] = user.completed_sale_count()
        items.append(data)
    return jsonify(paginated(pagination, items))


@admin_bp.route('/customers/<int:user_id>')
@login_required
@admin_required
def customer_detail(user_id):
    """Customer with recent sales and coupon usage."""
    user = User.query.get_or_404(user_id)

    recent_sales = user.sales.order_by(Sale.sale_date.desc()).limit(10).all()
    usages = user.coupon_usages.order_by(CouponUsage.used_at.desc()).limit(20).all()

    data = user.to_dict()
    data.update({
        'visit_count': user.completed_sale_count(),
        'recent_sales': [s.to_dict() for s in recent_sales],
        'coupon_usages': [u.to_dict() for u in usages],
    })
    return jsonify(data)
