"""Create the database schema for the configured `DATABASE_URL`.

Tables are created from the SQLModel metadata; existing tables are left
untouched. Usage: python run_migrations.py
"""
from elearning.config import settings
from elearning.database import create_db_and_tables


def run():
    """Create every missing table against the configured database.

    Intended for local development and quick bootstrapping; run it
    before starting the API against a fresh database.
    """
    print("Using database:", settings.DATABASE_URL)
    create_db_and_tables()
    print("Schema up to date.")


if __name__ == '__main__':
    run()
