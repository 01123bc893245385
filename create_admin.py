#!/usr/bin/env python3
"""
Script to create a salon admin (staff) account.
Run this script from the project root with the same environment as the app.
"""

from salon import create_app
from salon.extensions import db
from salon.models import User


def create_admin_user(email, password, name, phone=''):
    """
    Create an admin user, or promote an existing account.
    
    Args:
        email: Admin email address
        password: Admin password (will be hashed)
        name: Admin full name
        phone: Admin phone number (optional)
    """
    user = User.query.filter_by(email=email).first()
    if user:
        print(f"User with email {email} already exists (role: {user.role}).")
        
        update = input("Do you want to update this user to admin role? (yes/no): ").lower()
        if update == 'yes':
            user.role = 'admin'
            db.session.commit()
            print(f"User {email} updated to admin role!")
        return
    
    admin_user = User(
        email=email,
        name=name,
        phone=phone or None,
        role='admin'
    )
    admin_user.set_password(password)
    db.session.add(admin_user)
    db.session.commit()
    
    print("Admin user created successfully!")
    print(f"   Email: {email}")
    print(f"   Name: {name}")
    print("   Role: admin")


def main():
    print("=" * 60)
    print("Salon - Admin User Creation")
    print("=" * 60)
    print()
    
    print("Enter admin user details:")
    email = input("Email: ").strip().lower()
    password = input("Password: ").strip()
    name = input("Full Name: ").strip()
    phone = input("Phone (optional): ").strip()
    
    print()
    print("Creating admin user with:")
    print(f"  Email: {email}")
    print(f"  Name: {name}")
    print(f"  Phone: {phone if phone else 'Not provided'}")
    print()
    
    confirm = input("Proceed? (yes/no): ").lower()
    if confirm != 'yes':
        print("Admin creation cancelled.")
        return
    
    app = create_app()
    with app.app_context():
        db.create_all()
        create_admin_user(email, password, name, phone)


if __name__ == '__main__':
    main()
