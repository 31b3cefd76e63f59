#!/usr/bin/env python3
"""
Database initialization script that runs migrations and optionally seeds a
demo order. Runs when the API container starts up.
"""

import sys
import os
import time
import subprocess
from decimal import Decimal

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import create_engine, text  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from core.dependencies import get_settings, init_settings  # noqa: E402
from db.models import Order, OrderStatus  # noqa: E402
from db.session import init_db, manual_session  # noqa: E402


def wait_for_db(max_attempts=30, delay=2):
    """Wait for database to be ready."""
    settings = get_settings()

    for attempt in range(max_attempts):
        try:
            engine = create_engine(settings.DATABASE_URL)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print(f"✅ Database ready after {attempt + 1} attempts")
            engine.dispose()
            return True
        except OperationalError:
            print(f"⏳ Database not ready, attempt {attempt + 1}/{max_attempts}...")
            time.sleep(delay)

    print(f"❌ Database not ready after {max_attempts} attempts")
    return False


def run_migrations():
    """Run Alembic migrations, falling back to create_all for SQLite."""
    settings = get_settings()
    if not settings.DATABASE_URL.startswith("postgresql"):
        init_db(settings)
        print("✅ Tables created")
        return True

    print("🔄 Running database migrations...")
    result = subprocess.run(["alembic", "upgrade", "head"], capture_output=True, text=True)
    if result.returncode == 0:
        print("✅ Migrations completed successfully")
        return True
    print(f"❌ Migration failed: {result.stderr}")
    return False


def seed_demo_order():
    """Create one pending INR order for manual checkout testing."""
    with manual_session(get_settings()) as db:
        if db.query(Order).count() > 0:
            print("ℹ️  Orders already present, skipping seed")
            return
        db.add(
            Order(
                total=Decimal("500.00"),
                currency="INR",
                billing_first_name="Demo",
                billing_last_name="Buyer",
                billing_email="buyer@example.com",
                billing_phone="9999999999",
                status=OrderStatus.pending,
            )
        )
    print("✅ Seeded demo order")


def init_database():
    init_settings()
    if not wait_for_db():
        sys.exit(1)
    if not run_migrations():
        sys.exit(1)
    if os.getenv("SEED_DEMO_ORDER", "").lower() in {"1", "true", "yes"}:
        seed_demo_order()


if __name__ == "__main__":
    init_database()
