#!/usr/bin/env python3
"""
Script to create the first administrator account.
Self-registered accounts wait for approval, so someone has to approve them.
"""
import argparse
import getpass
import sys

from sqlmodel import Session

from crud.auth import create_user_with_password, get_user_by_email
from db.session import SessionLocal, init_db
from models.users import User


def get_or_create_admin(db: Session, email: str, name: str, password: str) -> User:
    """Get existing user (promoted to admin) or create a new approved admin."""
    user = get_user_by_email(db, email)

    if user:
        if user.role != "admin" or not user.is_approved:
            user.role = "admin"
            user.is_approved = True
            db.add(user)
            db.commit()
            db.refresh(user)
            print(f"✓ Promoted existing user to admin: {user.email} (ID: {user.id})")
        else:
            print(f"✓ Admin already exists: {user.email} (ID: {user.id})")
        return user

    user = create_user_with_password(
        db,
        email=email,
        password=password,
        name=name,
        role="admin",
        is_approved=True,
    )
    print(f"✓ Created new admin: {user.email} (ID: {user.id})")
    return user


def main():
    parser = argparse.ArgumentParser(description="Create an approved admin account")
    parser.add_argument("--email", default="admin@restaurant.local", help="Admin email")
    parser.add_argument("--name", default="Admin User", help="Admin display name")
    parser.add_argument("--password", help="Admin password (prompted if omitted)")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Admin password: ")
    if len(password) < 6:
        print("✗ Error: password must be at least 6 characters")
        sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        get_or_create_admin(db, args.email.strip().lower(), args.name, password)
    finally:
        db.close()


if __name__ == "__main__":
    main()
