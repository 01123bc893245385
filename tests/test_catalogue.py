"""Admin menu, category and counter discount management."""

from datetime import date

from salon.extensions import db
from salon.models import Discount, Menu, MenuCategory, Sale, SaleItem


def add_sale_line(menu_id, category_id):
    sale = Sale(sale_number=f'SALE-20261001-{Sale.query.count() + 1:03d}', subtotal=5500,
                total_amount=5500, sale_date=date(2026, 10, 1), sale_time='10:00')
    db.session.add(sale)
    db.session.flush()
    db.session.add(SaleItem(sale_id=sale.id, item_type='MENU', menu_id=menu_id, category_id=category_id,
                            item_name='Cut', unit_price=5500, subtotal=5500))
    db.session.commit()


class TestCategories:

    def test_requires_admin(self, customer_client):
        assert customer_client.get('/admin/categories').status_code == 403

    def test_create_with_slug(self, admin_client):
        response = admin_client.post('/admin/categories', json={'name': 'Head Spa', 'display_order': 3})
        assert response.status_code == 201
        data = response.get_json()
        assert data['slug'] == 'head-spa'
        assert data['display_order'] == 3
        assert data['is_active'] is True

    def test_duplicate_name(self, admin_client, catalogue):
        response = admin_client.post('/admin/categories', json={'name': 'cut'})
        assert response.status_code == 400

    def test_list_with_menu_counts(self, admin_client, catalogue, app):
        with app.app_context():
            db.session.get(MenuCategory, catalogue['color'][0]).is_active = False
            db.session.commit()

        listed = admin_client.get('/admin/categories').get_json()['categories']
        assert [(c['name'], c['menu_count']) for c in listed] == [('Cut', 1)]

        listed = admin_client.get('/admin/categories?include_inactive=true').get_json()['categories']
        assert len(listed) == 2

    def test_detail_and_update(self, admin_client, catalogue):
        category_id = catalogue['cut'][0]
        assert admin_client.get(f'/admin/categories/{category_id}').get_json()['menus'][0]['name'] == 'Cut'

        data = admin_client.put(f'/admin/categories/{category_id}', json={'name': 'Cuts'}).get_json()
        assert data['name'] == 'Cuts'
        assert data['slug'] == 'cut'

        assert admin_client.put(f'/admin/categories/{category_id}', json={'name': 'Color'}).status_code == 400

    def test_delete_refused_with_active_menus(self, admin_client, catalogue):
        assert admin_client.delete(f"/admin/categories/{catalogue['cut'][0]}").status_code == 400

    def test_delete_empty_category(self, admin_client, app, catalogue):
        category_id, menu_id = catalogue['cut']
        with app.app_context():
            db.session.get(Menu, menu_id).is_active = False
            db.session.commit()

        data = admin_client.delete(f'/admin/categories/{category_id}').get_json()
        assert data['deleted'] is True
        with app.app_context():
            assert db.session.get(MenuCategory, category_id) is None
            assert db.session.get(Menu, menu_id) is None

    def test_delete_category_with_sales_only_disables(self, admin_client, app, catalogue):
        category_id, menu_id = catalogue['cut']
        with app.app_context():
            db.session.get(Menu, menu_id).is_active = False
            add_sale_line(menu_id, category_id)

        assert admin_client.delete(f'/admin/categories/{category_id}').get_json()['deleted'] is False
        with app.app_context():
            assert db.session.get(MenuCategory, category_id).is_active is False


class TestMenus:

    def test_create(self, admin_client, catalogue):
        response = admin_client.post('/admin/menus', json={
            'category_id': catalogue['color'][0],
            'name': 'Retouch Color',
            'price': 6600,
            'duration_mins': 75,
        })
        assert response.status_code == 201
        data = response.get_json()
        assert data['slug'] == 'retouch-color'
        assert data['price_variable'] is False

    def test_create_needs_known_category(self, admin_client):
        response = admin_client.post('/admin/menus', json={'category_id': 99, 'name': 'X', 'price': 100})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Category not found'

    def test_price_must_be_positive(self, admin_client, catalogue):
        response = admin_client.post('/admin/menus', json={
            'category_id': catalogue['cut'][0], 'name': 'Free', 'price': 0})
        assert response.status_code == 400

    def test_list_filters(self, admin_client, app, catalogue):
        with app.app_context():
            db.session.get(Menu, catalogue['color'][1]).is_active = False
            db.session.commit()

        names = [m['name'] for m in admin_client.get('/admin/menus').get_json()['menus']]
        assert names == ['Cut']

        listed = admin_client.get(f"/admin/menus?category_id={catalogue['color'][0]}&include_inactive=true")
        menus = listed.get_json()['menus']
        assert [m['name'] for m in menus] == ['Full Color']
        assert menus[0]['category']['name'] == 'Color'

    def test_update(self, admin_client, catalogue):
        menu_id = catalogue['cut'][1]
        data = admin_client.put(f'/admin/menus/{menu_id}', json={'price': 6050, 'price_variable': True}).get_json()
        assert (data['price'], data['price_variable']) == (6050, True)

        assert admin_client.put(f'/admin/menus/{menu_id}', json={'category_id': 99}).status_code == 400
        assert admin_client.get(f'/admin/menus/{menu_id}').get_json()['price'] == 6050

    def test_delete(self, admin_client, app, catalogue):
        menu_id = catalogue['color'][1]
        assert admin_client.delete(f'/admin/menus/{menu_id}').get_json()['deleted'] is True
        with app.app_context():
            assert db.session.get(Menu, menu_id) is None

    def test_delete_sold_menu_only_disables(self, admin_client, app, catalogue):
        category_id, menu_id = catalogue['cut']
        with app.app_context():
            add_sale_line(menu_id, category_id)

        assert admin_client.delete(f'/admin/menus/{menu_id}').get_json()['deleted'] is False
        with app.app_context():
            assert db.session.get(Menu, menu_id).is_active is False


class TestDiscounts:

    def test_create_and_list(self, admin_client):
        created = admin_client.post('/admin/discounts', json={
            'name': 'Student', 'type': 'PERCENTAGE', 'value': 10, 'display_order': 1})
        assert created.status_code == 201
        admin_client.post('/admin/discounts', json={'name': 'Referral', 'type': 'FIXED', 'value': 500})
        admin_client.post('/admin/discounts', json={
            'name': 'Old', 'type': 'FIXED', 'value': 300, 'is_active': False})

        names = [d['name'] for d in admin_client.get('/admin/discounts').get_json()['discounts']]
        assert names == ['Referral', 'Student']

        listed = admin_client.get('/admin/discounts?include_inactive=true').get_json()['discounts']
        assert len(listed) == 3

    def test_percentage_capped(self, admin_client):
        response = admin_client.post('/admin/discounts', json={'name': 'Too much', 'type': 'PERCENTAGE', 'value': 120})
        assert response.status_code == 400

    def test_update_checks_merged_values(self, admin_client):
        discount_id = admin_client.post('/admin/discounts', json={
            'name': 'Referral', 'type': 'FIXED', 'value': 500}).get_json()['id']

        assert admin_client.put(f'/admin/discounts/{discount_id}', json={'type': 'PERCENTAGE'}).status_code == 400
        data = admin_client.put(f'/admin/discounts/{discount_id}', json={'value': 800}).get_json()
        assert data['value'] == 800

    def test_delete_used_discount_only_disables(self, admin_client, app):
        with app.app_context():
            discount = Discount(name='Student', type='PERCENTAGE', value=10)
            db.session.add(discount)
            db.session.flush()
            db.session.add(Sale(sale_number='SALE-20261001-001', subtotal=1000, discount_amount=100,
                                discount_id=discount.id, total_amount=900,
                                sale_date=date(2026, 10, 1), sale_time='10:00'))
            db.session.commit()
            discount_id = discount.id

        assert admin_client.delete(f'/admin/discounts/{discount_id}').get_json()['deleted'] is False
        with app.app_context():
            assert db.session.get(Discount, discount_id).is_active is False

    def test_delete_unknown(self, admin_client):
        assert admin_client.delete('/admin/discounts/99').status_code == 404
