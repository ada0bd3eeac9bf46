"""
Initialize database and run migrations. Run from backend dir: python -m scripts.init_db
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from timegate.core.config import settings
from alembic.config import Config
from alembic import command


def init_db():
    """Run all migrations, then seed the default admin when SEED_ADMIN is set."""
    alembic_cfg = Config(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "alembic.ini"))

    print("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    print(f"Database initialized and migrations applied at {settings.DATABASE_PATH}")

    if settings.SEED_ADMIN:
        from timegate.core.db_transaction import db_transaction
        from timegate.core.security import get_password_hasher
        from timegate.services.auth_service import seed_admin

        with db_transaction() as db:
            admin = seed_admin(db, get_password_hasher(), settings)
        if admin:
            print(f"Default admin user created ({settings.ADMIN_EMAIL})")
        else:
            print("Admin user already exists")


if __name__ == "__main__":
    init_db()
