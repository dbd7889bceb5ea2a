"""
Create the first admin user.
Usage: python scripts/create_admin.py --email admin@example.com --password secret
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.db.base import SessionLocal
from app.core.exceptions import KuluError
from app.services.auth import create_admin_user


def create_admin(email: str = "admin@kulusheet.local", password: str = "admin123", name: str = "Admin"):
    """Create an admin user with the ADMIN role."""
    db = SessionLocal()
    try:
        create_admin_user(db, email=email, password=password, name=name)
        print(f"✅ Admin user created successfully!")
        print(f"   Email: {email}")
        print(f"   Role: ADMIN")
        print(f"\n⚠️  Please change the password after first login!")
    except KuluError as e:
        print(f"❌ Error creating admin user: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--email", default="admin@kulusheet.local", help="Admin email")
    parser.add_argument("--password", default="admin123", help="Admin password")
    parser.add_argument("--name", default="Admin", help="Display name")

    args = parser.parse_args()

    create_admin(email=args.email, password=args.password, name=args.name)
