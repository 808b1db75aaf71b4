"""Script to create the initial admin user."""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from estimator.database import SessionLocal, engine, Base
from estimator.config import settings
from estimator.services.users import UserDirectory
import estimator.models  # noqa: F401


def create_admin():
    """Create the default admin user if the user directory is empty."""
    # Create tables
    Base.metadata.create_all(bind=engine)
    
    db = SessionLocal()
    try:
        admin = UserDirectory(db).ensure_default_admin()
        if admin is None:
            print("Users already exist; no default admin created.")
            return
        
        print("Admin user created successfully!")
        print(f"Username: {settings.DEFAULT_ADMIN_USERNAME}")
        print(f"Password: {settings.DEFAULT_ADMIN_PASSWORD}")
        print("\nPlease change the password after first login!")
        
    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
