"""
Bootstrap an EventHub administrator.

Self-service registration never grants ``admin``, so the first admin account
has to be created here. Later admins can be promoted through
``PATCH /api/admin/users/{id}/role``.

Usage:
    python create_admin_user.py
    python create_admin_user.py --test  # creates admin@eventhub.test / Admin12345
"""
import argparse
import getpass

from fastapi import HTTPException
from pydantic_core import PydanticCustomError
from sqlalchemy.orm import Session

from eventhub.api.schemas.auth import check_password_strength
from eventhub.core.password_reset import init_password_reset_tables
from eventhub.core.security import create_user, init_auth_tables
from eventhub.db.session import get_engine


def parse_args():
    parser = argparse.ArgumentParser(
        description="Create an admin user for local development environments."
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Create a default admin (admin@eventhub.test / Admin12345) without prompts.",
    )
    return parser.parse_args()


def main():
    args = parse_args()

    print("=" * 60)
    print("EventHub - Create Admin User")
    print("=" * 60)
    print()

    init_auth_tables()
    init_password_reset_tables()
    print("✓ Database tables initialized")

    if args.test:
        email = "admin@eventhub.test"
        username = "admin"
        first_name, last_name = "Test", "Admin"
        password = "Admin12345"
        print(f"Creating default admin: {email} / {password}")
    else:
        email = input("Enter email address: ").strip()
        if not email:
            print("Error: Email is required")
            return

        username = input("Enter username (optional): ").strip() or None
        first_name = input("Enter first name (optional): ").strip() or None
        last_name = input("Enter last name (optional): ").strip() or None

        password = getpass.getpass("Enter password: ")
        password_confirm = getpass.getpass("Confirm password: ")

        if password != password_confirm:
            print("Error: Passwords do not match")
            return

        try:
            check_password_strength(password)
        except PydanticCustomError as e:
            print(f"Error: {e.message()}")
            return

    with Session(get_engine()) as db:
        try:
            user = create_user(
                db=db,
                email=email,
                password=password,
                username=username,
                first_name=first_name,
                last_name=last_name,
                role="admin",
            )
        except HTTPException as e:
            print(f"Error creating user: {e.detail}")
            return

        print()
        print("=" * 60)
        print("✓ Admin created successfully!")
        print("=" * 60)
        print(f"Email: {user.email}")
        print(f"Username: {user.username or 'N/A'}")
        print(f"Created: {user.created_at}")
        print()
        print("You can now sign in with these credentials.")


if __name__ == "__main__":
    main()
