"""Seed script to populate database with sample data."""

from datetime import datetime, timedelta
from salon import create_app
from salon.extensions import db
from salon.models import User, MenuCategory, Menu, Coupon, Discount


def seed_database():
    """Seed the database with sample data."""
    app = create_app()
    
    with app.app_context():
        # Create tables
        db.create_all()
        
        # Check if already seeded
        if User.query.filter_by(email='admin@salon-mone.jp').first():
            print('Database already seeded!')
            return
        
        print('Seeding database...')
        
        # Create Admin
        admin = User(
            email='admin@salon-mone.jp',
            name='Salon Admin',
            phone='0312345678',
            role='admin'
        )
        admin.set_password('admin1234')
        db.session.add(admin)
        
        catalogue = {
            'Cut': [
                {'name': 'Cut', 'price': 5500, 'duration_mins': 60},
                {'name': 'Bangs Cut', 'price': 1100, 'duration_mins': 15},
            ],
            'Color': [
                {'name': 'Full Color', 'price': 8800, 'duration_mins': 90},
                {'name': 'Highlights', 'price': 12100, 'duration_mins': 120, 'price_variable': True},
            ],
            'Treatment': [
                {'name': 'Hair Treatment', 'price': 4400, 'duration_mins': 30},
                {'name': 'Head Spa', 'price': 6600, 'duration_mins': 45},
            ],
        }
        
        for order, (category_name, menus) in enumerate(catalogue.items()):
            category = MenuCategory(name=category_name, display_order=order)
            category.generate_slug()
            db.session.add(category)
            db.session.flush()
            
            for menu_order, menu_data in enumerate(menus):
                menu = Menu(
                    category_id=category.id,
                    name=menu_data['name'],
                    price=menu_data['price'],
                    duration_mins=menu_data['duration_mins'],
                    price_variable=menu_data.get('price_variable', False),
                    display_order=menu_order
                )
                menu.generate_slug()
                db.session.add(menu)
                db.session.flush()
        
        # Create sample customers
        customers = [
            {'email': 'hanako@salon-mone.jp', 'name': 'Hanako Sato', 'phone': '09011112222', 'password': 'user12345'},
            {'email': 'taro@salon-mone.jp', 'name': 'Taro Suzuki', 'phone': '09033334444', 'password': 'user12345'},
        ]
        
        for cust in customers:
            customer = User(
                email=cust['email'],
                name=cust['name'],
                phone=cust['phone'],
                role='customer'
            )
            customer.set_password(cust['password'])
            db.session.add(customer)
        
        # Create coupons
        now = datetime.now()
        db.session.add(Coupon(
            code='WELCOME10',
            name='First visit 10% off',
            description='10% off your first visit',
            type='PERCENTAGE',
            value=10,
            valid_from=now,
            valid_until=now + timedelta(days=365),
            only_first_time=True,
            usage_limit_per_customer=1
        ))
        db.session.add(Coupon(
            code='WEEKDAY1000',
            name='Weekday morning ¥1,000 off',
            description='¥1,000 off Monday to Thursday mornings',
            type='FIXED',
            value=1000,
            valid_from=now,
            valid_until=now + timedelta(days=90),
            minimum_amount=5000,
            applicable_weekdays=[1, 2, 3, 4],
            start_time='10:00',
            end_time='12:00'
        ))
        
        # Counter discounts
        db.session.add(Discount(name='Student', type='PERCENTAGE', value=10, display_order=0))
        db.session.add(Discount(name='Friend referral', type='FIXED', value=500, display_order=1))
        
        db.session.commit()
        print('Database seeded successfully!')
        print('\nTest Accounts:')
        print('  Admin: admin@salon-mone.jp / admin1234')
        print('  Customer: hanako@salon-mone.jp / user12345')
        print('\nCoupon Codes: WELCOME10 (10% off, first visit), WEEKDAY1000 (¥1,000 off, Mon-Thu 10:00-12:00)')


if __name__ == '__main__':
    seed_database()
