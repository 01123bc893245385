"""Parsing and validation of JSON request bodies.

Each parser returns plain values ready for the models or services and
raises :class:`PayloadError` with a user-facing message on the first
problem found.
"""

from datetime import datetime, date
from salon.exceptions import PayloadError
from salon.models.coupon import COUPON_TYPES, PERCENTAGE
from salon.services.coupon_validation import HHMM, MenuItem, ValidationRequest

ITEM_TYPES = ('MENU', 'PRODUCT')


def _require_object(data):
    if not isinstance(data, dict):
        raise PayloadError('Request body must be a JSON object')
    return data


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _int(data, key, minimum=None, maximum=None, required=False, default=None, label=None):
    label = label or key
    value = data.get(key)
    if value is None:
        if required:
            raise PayloadError(f'{label} is required')
        return default
    if not _is_int(value):
        raise PayloadError(f'{label} must be an integer')
    if minimum is not None and value < minimum:
        raise PayloadError(f'{label} must be at least {minimum}')
    if maximum is not None and value > maximum:
        raise PayloadError(f'{label} must be at most {maximum}')
    return value


def _str(data, key, required=False, max_length=None, label=None):
    label = label or key
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise PayloadError(f'{label} is required')
        return None
    if not isinstance(value, str):
        raise PayloadError(f'{label} must be a string')
    value = value.strip()
    if max_length and len(value) > max_length:
        raise PayloadError(f'{label} must be at most {max_length} characters')
    return value


def _bool(data, key, default=None):
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise PayloadError(f'{key} must be true or false')
    return value


def _list(data, key):
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise PayloadError(f'{key} must be a list')
    return value


def _time(data, key):
    value = data.get(key)
    if value is None or value == '':
        return None
    if not isinstance(value, str) or not HHMM.match(value):
        raise PayloadError(f'{key} must be in HH:MM format')
    hours, minutes = (int(part) for part in value.split(':'))
    if hours > 23 or minutes > 59:
        raise PayloadError(f'{key} must be in HH:MM format')
    return value


def _datetime(data, key, end_of_day=False):
    value = data.get(key)
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise PayloadError(f'{key} must be an ISO date or datetime')
    if end_of_day and len(value) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed.replace(tzinfo=None)


def _present(data, key, partial):
    return not partial or key in data


def _date(data, key):
    value = data.get(key)
    if value is None:
        raise PayloadError(f'{key} is required')
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise PayloadError(f'{key} must be in YYYY-MM-DD format')


# --- Coupon validation ---

def parse_menu_items(raw):
    items = []
    for entry in raw or []:
        if not isinstance(entry, dict) or entry.get('menu_id') is None:
            raise PayloadError('menu_items entries need a menu_id')
        items.append(MenuItem(
            menu_id=entry['menu_id'],
            category_id=entry.get('category_id'),
            price=_int(entry, 'price', minimum=0, required=True),
        ))
    return tuple(items)


def parse_validation_request(data, customer_id=None, allow_customer_id=False):
    """Build a ValidationRequest from a validate-coupon body.

    Staff callers may name the customer in the body; for customers the id
    always comes from the session and is passed in as ``customer_id``.
    """
    data = _require_object(data)
    if allow_customer_id:
        customer_id = _int(data, 'customer_id', minimum=1)

    return ValidationRequest(
        code=_str(data, 'code', required=True, max_length=50, label='Coupon code'),
        subtotal=_int(data, 'subtotal', minimum=0, required=True),
        customer_id=customer_id,
        menu_ids=tuple(_list(data, 'menu_ids') or ()),
        categories=tuple(_list(data, 'categories') or ()),
        weekday=_int(data, 'weekday', minimum=0, maximum=6),
        time=_time(data, 'time'),
        menu_items=parse_menu_items(_list(data, 'menu_items')),
    )


# --- Coupon administration ---

def parse_coupon_payload(data, partial=False):
    """Return the coupon fields present in ``data``.

    With ``partial`` (updates) missing keys are left out; otherwise the
    required fields must be present and optional ones get their defaults.
    """
    data = _require_object(data)
    required = not partial
    fields = {}

    def present(key):
        return _present(data, key, partial)

    if present('code'):
        code = _str(data, 'code', required=True, max_length=50, label='Coupon code')
        fields['code'] = code.upper()
    if present('name'):
        fields['name'] = _str(data, 'name', required=True, max_length=100, label='Coupon name')
    if present('description'):
        fields['description'] = _str(data, 'description', max_length=255)
    if present('type'):
        coupon_type = data.get('type')
        if coupon_type not in COUPON_TYPES:
            raise PayloadError('type must be PERCENTAGE or FIXED')
        fields['type'] = coupon_type
    if present('value'):
        fields['value'] = _int(data, 'value', minimum=1, required=True)
    if present('valid_from'):
        fields['valid_from'] = _datetime(data, 'valid_from')
        if fields['valid_from'] is None:
            raise PayloadError('valid_from is required')
    if present('valid_until'):
        fields['valid_until'] = _datetime(data, 'valid_until', end_of_day=True)
        if fields['valid_until'] is None:
            raise PayloadError('valid_until is required')

    for key in ('usage_limit', 'usage_limit_per_customer'):
        if present(key):
            fields[key] = _int(data, key, minimum=1)
    if present('minimum_amount'):
        fields['minimum_amount'] = _int(data, 'minimum_amount', minimum=0)

    for key in ('applicable_menu_ids', 'applicable_category_ids'):
        if present(key):
            fields[key] = [str(v) for v in _list(data, key) or []]
    if present('applicable_weekdays'):
        weekdays = _list(data, 'applicable_weekdays') or []
        if any(not _is_int(d) or not 0 <= d <= 6 for d in weekdays):
            raise PayloadError('applicable_weekdays must contain integers from 0 to 6')
        fields['applicable_weekdays'] = sorted(set(weekdays))

    for key in ('start_time', 'end_time'):
        if present(key):
            fields[key] = _time(data, key)
    for key in ('only_first_time', 'only_returning'):
        if present(key):
            fields[key] = _bool(data, key, default=False)
    if present('is_active'):
        fields['is_active'] = _bool(data, 'is_active', default=True)

    if required:
        for key in ('code', 'name', 'type', 'value', 'valid_from', 'valid_until'):
            if fields.get(key) is None:
                raise PayloadError(f'{key} is required')
    return fields


def check_coupon_consistency(values):
    """Cross-field rules on the merged coupon values (stored values overlaid with the payload)."""
    if values.get('type') == PERCENTAGE and values.get('value', 0) > 100:
        raise PayloadError('Percentage discounts cannot exceed 100%')
    if values['valid_from'] >= values['valid_until']:
        raise PayloadError('valid_until must be later than valid_from')
    if values.get('only_first_time') and values.get('only_returning'):
        raise PayloadError('A coupon cannot be both first-time only and returning only')
    start, end = values.get('start_time'), values.get('end_time')
    if start and end and start >= end:
        raise PayloadError('end_time must be later than start_time')


# --- POS sales ---

def parse_sale_payload(data):
    data = _require_object(data)
    raw_items = _list(data, 'items')
    if not raw_items:
        raise PayloadError('A sale needs at least one item')

    items = []
    for entry in raw_items:
        if not isinstance(entry, dict):
            raise PayloadError('Each item must be an object')
        item_type = entry.get('item_type', 'MENU')
        if item_type not in ITEM_TYPES:
            raise PayloadError('item_type must be MENU or PRODUCT')
        items.append({
            'item_type': item_type,
            'menu_id': _int(entry, 'menu_id', minimum=1),
            'category_id': _int(entry, 'category_id', minimum=1),
            'item_name': _str(entry, 'item_name', max_length=150),
            'quantity': _int(entry, 'quantity', minimum=1, default=1),
            'unit_price': _int(entry, 'unit_price', minimum=0, required=True),
        })

    sale_time = _time(data, 'sale_time')
    if sale_time is None:
        raise PayloadError('sale_time is required')

    return {
        'customer_id': _int(data, 'customer_id', minimum=1),
        'customer_name': _str(data, 'customer_name', max_length=100),
        'items': items,
        'discount_amount': _int(data, 'discount_amount', minimum=0, default=0),
        'discount_id': _int(data, 'discount_id', minimum=1),
        'coupon_code': _str(data, 'coupon_code', max_length=50),
        'payment_method': _str(data, 'payment_method', max_length=30) or 'CASH',
        'sale_date': _date(data, 'sale_date'),
        'sale_time': sale_time,
        'note': _str(data, 'note'),
    }


# --- Catalogue ---

def parse_category_payload(data, partial=False):
    data = _require_object(data)
    fields = {}
    if _present(data, 'name', partial):
        fields['name'] = _str(data, 'name', required=True, max_length=100, label='Category name')
    if _present(data, 'description', partial):
        fields['description'] = _str(data, 'description', max_length=255)
    if _present(data, 'display_order', partial):
        fields['display_order'] = _int(data, 'display_order', minimum=0, default=0)
    if _present(data, 'is_active', partial):
        fields['is_active'] = _bool(data, 'is_active', default=True)
    return fields


def parse_menu_payload(data, partial=False):
    """Menu fields present in ``data``; ``category_id`` existence is checked by the caller."""
    data = _require_object(data)
    fields = {}
    if _present(data, 'category_id', partial):
        fields['category_id'] = _int(data, 'category_id', minimum=1, required=True)
    if _present(data, 'name', partial):
        fields['name'] = _str(data, 'name', required=True, max_length=150, label='Menu name')
    if _present(data, 'description', partial):
        fields['description'] = _str(data, 'description')
    if _present(data, 'price', partial):
        fields['price'] = _int(data, 'price', minimum=1, required=True)
    if _present(data, 'price_variable', partial):
        fields['price_variable'] = _bool(data, 'price_variable', default=False)
    if _present(data, 'duration_mins', partial):
        fields['duration_mins'] = _int(data, 'duration_mins', minimum=0, default=60)
    if _present(data, 'display_order', partial):
        fields['display_order'] = _int(data, 'display_order', minimum=0, default=0)
    if _present(data, 'is_active', partial):
        fields['is_active'] = _bool(data, 'is_active', default=True)
    return fields


# --- Counter discounts ---

def parse_discount_payload(data, partial=False):
    data = _require_object(data)
    fields = {}
    if _present(data, 'name', partial):
        fields['name'] = _str(data, 'name', required=True, max_length=100, label='Discount name')
    if _present(data, 'type', partial):
        if data.get('type') not in COUPON_TYPES:
            raise PayloadError('type must be PERCENTAGE or FIXED')
        fields['type'] = data['type']
    if _present(data, 'value', partial):
        fields['value'] = _int(data, 'value', minimum=1, required=True)
    if _present(data, 'description', partial):
        fields['description'] = _str(data, 'description', max_length=255)
    if _present(data, 'display_order', partial):
        fields['display_order'] = _int(data, 'display_order', minimum=0, default=0)
    if _present(data, 'is_active', partial):
        fields['is_active'] = _bool(data, 'is_active', default=True)
    return fields


def check_discount_consistency(values):
    if values.get('type') == PERCENTAGE and values.get('value', 0) > 100:
        raise PayloadError('Percentage discounts cannot exceed 100%')
