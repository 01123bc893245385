import pytest
from datetime import datetime, timedelta

from salon import create_app
from salon.extensions import db
from salon.models import User, Coupon, MenuCategory, Menu

# A Friday (weekday 5 with 0=Sunday)
NOW = datetime(2026, 10, 16, 11, 30)

PASSWORD = 'password123'


@pytest.fixture
def app():
    """Application with a fresh in-memory database per test."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def coupon_factory():
    """Build unsaved Coupon instances with every field set."""
    def _build(**overrides):
        fields = {
            'id': 1,
            'code': 'SUMMER10',
            'name': 'Summer sale',
            'description': None,
            'type': 'PERCENTAGE',
            'value': 10,
            'valid_from': NOW - timedelta(days=30),
            'valid_until': NOW + timedelta(days=30),
            'usage_limit': None,
            'usage_count': 0,
            'usage_limit_per_customer': None,
            'minimum_amount': None,
            'applicable_menu_ids': [],
            'applicable_category_ids': [],
            'applicable_weekdays': [],
            'start_time': None,
            'end_time': None,
            'only_first_time': False,
            'only_returning': False,
            'is_active': True,
        }
        fields.update(overrides)
        return Coupon(**fields)
    return _build


@pytest.fixture
def make_user(app):
    def _make(email, role='customer', name='Test User', is_active=True):
        with app.app_context():
            user = User(email=email, name=name, role=role, is_active=is_active)
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def make_coupon(app):
    """Persist a coupon valid around the real current time and return its id."""
    def _make(**overrides):
        now = datetime.now()
        fields = {
            'code': 'SUMMER10',
            'name': 'Summer sale',
            'type': 'PERCENTAGE',
            'value': 10,
            'valid_from': now - timedelta(days=1),
            'valid_until': now + timedelta(days=30),
        }
        fields.update(overrides)
        with app.app_context():
            coupon = Coupon(**fields)
            db.session.add(coupon)
            db.session.commit()
            return coupon.id
    return _make


@pytest.fixture
def catalogue(app):
    """Two categories with one menu each: {'cut': (category_id, menu_id), 'color': ...}."""
    with app.app_context():
        result = {}
        for order, (name, menu_name, price) in enumerate([
            ('Cut', 'Cut', 5500),
            ('Color', 'Full Color', 8800),
        ]):
            category = MenuCategory(name=name, display_order=order)
            category.generate_slug()
            db.session.add(category)
            db.session.flush()
            menu = Menu(category_id=category.id, name=menu_name, price=price, duration_mins=60)
            menu.generate_slug()
            db.session.add(menu)
            db.session.flush()
            result[name.lower()] = (category.id, menu.id)
        db.session.commit()
        return result


def login(client, email, password=PASSWORD):
    return client.post('/login', json={'email': email, 'password': password})


@pytest.fixture
def admin_client(client, make_user):
    make_user('admin@salon-mone.jp', role='admin', name='Admin')
    assert login(client, 'admin@salon-mone.jp').status_code == 200
    return client


@pytest.fixture
def customer_id(make_user):
    return make_user('hanako@salon-mone.jp', name='Hanako Sato')


@pytest.fixture
def customer_client(client, customer_id):
    assert login(client, 'hanako@salon-mone.jp').status_code == 200
    return client
