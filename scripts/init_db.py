"""
Initialize the local cache database for the notes client.

Usage:
    python scripts/init_db.py
"""

from premium_notes.config import get_settings
from premium_notes.database import create_cache_engine


def main() -> None:
    engine = create_cache_engine(get_settings().cache_database_url)
    print(f"Cache database initialized at {engine.url.database}")


if __name__ == "__main__":
    main()
