#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every table from the models, without alembic. Reads DATABASE_URL
and ENVIRONMENT like the application does.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'portfolio_ledger' is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from portfolio_ledger.config import Settings
from portfolio_ledger.database import create_db_engine
from portfolio_ledger.models import Base


def init_db() -> None:
    """Create all database tables defined in models."""
    engine = create_db_engine(Settings())
    print(f"Creating database tables on {engine.dialect.name}...")
    Base.metadata.create_all(bind=engine)
    print("Tables created successfully!")


if __name__ == "__main__":
    init_db()
