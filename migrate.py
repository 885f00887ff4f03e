"""Migration / setup helper
This script initializes the database schema used by the carpool service.
Run: python migrate.py
"""
from db import init_db
from config import DATABASE_URL


def main():
    init_db()
    print(f"Database initialized ({DATABASE_URL})")


if __name__ == "__main__":
    main()
