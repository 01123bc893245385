"""Shared JSON responses."""

import logging
from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from salon.extensions import db
from salon.exceptions import CouponDataError, PayloadError
from salon.services.coupon_validation import CouponValidator

logger = logging.getLogger(__name__)


def coupon_validation_response(parse_request):
    """Parse a validate-coupon body with ``parse_request`` and answer with the result.

    Rejections are ordinary 200 answers with ``valid: false``; bad input
    answers 400 and database or stored-data failures answer 500.
    """
    try:
        validation_request = parse_request()
    except PayloadError as e:
        return jsonify({'valid': False, 'error': str(e)}), 400
    
    try:
        result = CouponValidator().evaluate(validation_request)
    except (SQLAlchemyError, CouponDataError):
        logger.exception(f'Coupon validation failed for {validation_request.code!r}')
        db.session.rollback()
        return jsonify({'valid': False, 'error': 'Failed to validate coupon'}), 500
    
    return jsonify(result.to_dict())


def paginated(pagination, items):
    return {
        'items': items,
        'page': pagination.page,
        'pages': pagination.pages,
        'total': pagination.total,
    }
