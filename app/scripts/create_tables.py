"""
Database table creation script.

Creates the tables for every model (currently only ``users``). The
application also does this on startup unless CREATE_TABLES_ON_STARTUP
is disabled, in which case run this once per environment.

Usage:
    # Create tables (idempotent - won't recreate existing tables)
    python -m app.scripts.create_tables
"""

from app.db import Base, init_db


def main():
    print("Creating tables...")
    init_db()
    print("Done.")
    print("\nTables created:")
    for table in Base.metadata.tables:
        print(f"  - {table}")


if __name__ == "__main__":
    main()
