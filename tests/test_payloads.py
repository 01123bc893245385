import pytest
from datetime import datetime, date

from salon.exceptions import PayloadError
from salon.services.coupon_validation import MenuItem
from salon.utils.payloads import (parse_validation_request, parse_coupon_payload,
                                  check_coupon_consistency, parse_sale_payload,
                                  parse_menu_payload, parse_discount_payload,
                                  check_discount_consistency)


class TestValidationRequest:

    def test_full_body(self):
        request = parse_validation_request({
            'code': ' summer10 ',
            'subtotal': 8000,
            'menu_ids': ['3'],
            'categories': ['1'],
            'weekday': 0,
            'time': '09:15',
            'menu_items': [{'menu_id': 3, 'category_id': 1, 'price': 8000}],
        })
        assert request.code == 'summer10'
        assert request.menu_ids == ('3',)
        assert request.weekday == 0
        assert request.menu_items == (MenuItem(3, 1, 8000),)
        assert request.customer_id is None

    def test_customer_id_ignored_unless_allowed(self):
        body = {'code': 'A', 'subtotal': 1, 'customer_id': 7}
        assert parse_validation_request(body, customer_id=3).customer_id == 3
        assert parse_validation_request(body, allow_customer_id=True).customer_id == 7

    @pytest.mark.parametrize('body', [
        None,
        [],
        {'subtotal': 100},
        {'code': '', 'subtotal': 100},
        {'code': 'A'},
        {'code': 'A', 'subtotal': '100'},
        {'code': 'A', 'subtotal': True},
        {'code': 'A', 'subtotal': 1, 'weekday': 7},
        {'code': 'A', 'subtotal': 1, 'time': '24:00'},
        {'code': 'A', 'subtotal': 1, 'time': '9:00'},
        {'code': 'A', 'subtotal': 1, 'menu_ids': '3'},
        {'code': 'A', 'subtotal': 1, 'menu_items': [{'price': 1}]},
    ])
    def test_rejects_bad_bodies(self, body):
        with pytest.raises(PayloadError):
            parse_validation_request(body)


class TestCouponPayload:

    def test_defaults_and_normalisation(self):
        fields = parse_coupon_payload({
            'code': 'welcome',
            'name': 'Welcome',
            'type': 'FIXED',
            'value': 1000,
            'valid_from': '2026-01-01',
            'valid_until': '2026-12-31',
            'applicable_menu_ids': [4, '5'],
        })
        assert fields['code'] == 'WELCOME'
        assert fields['valid_from'] == datetime(2026, 1, 1)
        assert fields['valid_until'] == datetime(2026, 12, 31, 23, 59, 59)
        assert fields['applicable_menu_ids'] == ['4', '5']
        assert fields['applicable_weekdays'] == []
        assert fields['only_first_time'] is False
        assert fields['is_active'] is True

    def test_partial_keeps_only_given_keys(self):
        assert parse_coupon_payload({'usage_limit': 5}, partial=True) == {'usage_limit': 5}

    def test_missing_required(self):
        with pytest.raises(PayloadError, match='code'):
            parse_coupon_payload({'name': 'x', 'type': 'FIXED', 'value': 1,
                                  'valid_from': '2026-01-01', 'valid_until': '2026-02-01'})

    @pytest.mark.parametrize('changes', [
        {'type': 'BOGO'},
        {'value': 0},
        {'applicable_weekdays': [7]},
        {'start_time': '25:00'},
        {'valid_from': 'tomorrow'},
    ])
    def test_bad_fields(self, changes):
        with pytest.raises(PayloadError):
            parse_coupon_payload(changes, partial=True)

    def test_consistency(self):
        base = {'type': 'PERCENTAGE', 'value': 50,
                'valid_from': datetime(2026, 1, 1), 'valid_until': datetime(2026, 2, 1)}
        check_coupon_consistency(base)

        for changes in ({'value': 101},
                        {'valid_until': datetime(2026, 1, 1)},
                        {'only_first_time': True, 'only_returning': True},
                        {'start_time': '15:00', 'end_time': '10:00'}):
            with pytest.raises(PayloadError):
                check_coupon_consistency({**base, **changes})


class TestSalePayload:

    def test_parse(self):
        payload = parse_sale_payload({
            'items': [{'menu_id': 1, 'unit_price': 5500, 'quantity': 2}],
            'sale_date': '2026-10-16',
            'sale_time': '18:45',
        })
        assert payload['sale_date'] == date(2026, 10, 16)
        assert payload['items'][0]['item_type'] == 'MENU'
        assert payload['payment_method'] == 'CASH'
        assert payload['discount_amount'] == 0
        assert payload['coupon_code'] is None

    @pytest.mark.parametrize('body', [
        {'items': [], 'sale_date': '2026-10-16', 'sale_time': '10:00'},
        {'items': [{'unit_price': 1, 'item_type': 'GIFT'}], 'sale_date': '2026-10-16', 'sale_time': '10:00'},
        {'items': [{'unit_price': 1}], 'sale_time': '10:00'},
        {'items': [{'unit_price': 1}], 'sale_date': '2026-10-16'},
        {'items': [{'unit_price': -1}], 'sale_date': '2026-10-16', 'sale_time': '10:00'},
    ])
    def test_rejects(self, body):
        with pytest.raises(PayloadError):
            parse_sale_payload(body)


class TestMenuPayload:

    def test_defaults(self):
        fields = parse_menu_payload({'category_id': 1, 'name': ' Cut ', 'price': 5500})
        assert fields['name'] == 'Cut'
        assert fields['duration_mins'] == 60
        assert fields['price_variable'] is False
        assert fields['is_active'] is True

    def test_partial(self):
        assert parse_menu_payload({'price': 6050}, partial=True) == {'price': 6050}

    @pytest.mark.parametrize('body', [
        {'name': 'Cut', 'price': 5500},
        {'category_id': 1, 'price': 5500},
        {'category_id': 1, 'name': 'Cut', 'price': 0},
        {'category_id': 1, 'name': 'Cut', 'price': 5500, 'duration_mins': -5},
        {'category_id': 1, 'name': 'x' * 151, 'price': 5500},
    ])
    def test_rejects(self, body):
        with pytest.raises(PayloadError):
            parse_menu_payload(body)


class TestDiscountPayload:

    def test_parse(self):
        fields = parse_discount_payload({'name': 'Student', 'type': 'PERCENTAGE', 'value': 10})
        assert (fields['type'], fields['value'], fields['display_order']) == ('PERCENTAGE', 10, 0)

    def test_rejects_unknown_type(self):
        with pytest.raises(PayloadError):
            parse_discount_payload({'name': 'Half', 'type': 'HALF', 'value': 1})

    def test_percentage_cap(self):
        check_discount_consistency({'type': 'PERCENTAGE', 'value': 100})
        check_discount_consistency({'type': 'FIXED', 'value': 5000})
        with pytest.raises(PayloadError):
            check_discount_consistency({'type': 'PERCENTAGE', 'value': 101})
