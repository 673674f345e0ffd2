"""
Create the first admin account.
Usage: python scripts/create_admin.py [email] [password] [username]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from parish.core.errors import ParishError
from parish.db.base import SessionLocal
from parish.models.role import AppRole
from parish.models.user import User
from parish.services.auth import sign_up
from parish.services.roles import UserRoleRepository


def create_admin(email: str = "admin@fjkm-vatomandry.mg", password: str = "admin123", username: str = "Administrateur"):
    """Create an account with the ADMIN role, or promote the existing one."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = sign_up(db, email, password, username)
            print(f"Account {email} created")
        else:
            print(f"User with email {email} already exists, promoting to admin")

        UserRoleRepository(db).upsert(user.id, AppRole.ADMIN)
        print(f"✅ Admin user ready!")
        print(f"   Email: {email}")
        print(f"   Role: {AppRole.ADMIN.value}")
    except ParishError as e:
        print(f"❌ Could not create admin: {e.message}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    create_admin(*sys.argv[1:4])
