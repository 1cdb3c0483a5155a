#!/usr/bin/env python3
"""
Create the videos table in Snowflake.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --dry-run

Requires:
    - .env file with Snowflake credentials
"""

import os
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


CREATE_VIDEOS_TABLE = """
    CREATE TABLE IF NOT EXISTS videos (
        video_id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL,
        title VARCHAR(200) NOT NULL,
        description VARCHAR(5000),
        thumbnail_url VARCHAR(2048),
        video_url VARCHAR(2048),
        created_at TIMESTAMP_TZ NOT NULL,
        updated_at TIMESTAMP_TZ NOT NULL
    )
"""


def create_tables(dry_run: bool = False) -> bool:
    """Connect with the app's settings and create missing tables."""
    from src.config.settings import get_settings
    from src.infrastructure.snowflake.client import SnowflakeConnectionError, get_snowflake_connection
    from src.infrastructure.snowflake.repositories.videos import SnowflakeConfig

    settings = get_settings()

    if not settings.snowflake_account or not settings.snowflake_user:
        print("ERROR: Missing SNOWFLAKE_ACCOUNT or SNOWFLAKE_USER")
        return False

    if dry_run:
        print("\n=== DRY RUN - nothing will be created ===\n")
        print(CREATE_VIDEOS_TABLE)
        return True

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    try:
        print(f"Connecting to Snowflake account: {settings.snowflake_account}")
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(CREATE_VIDEOS_TABLE)
                conn.commit()
            finally:
                cursor.close()
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        return False

    print(f"[OK] videos table ready in {settings.snowflake_database}.{settings.snowflake_schema}")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Create Tubely tables in Snowflake')
    parser.add_argument('--dry-run', action='store_true', help='Print DDL only')
    args = parser.parse_args()

    if not os.path.exists('.env'):
        print("WARNING: no .env file in the current directory, using process environment")

    success = create_tables(dry_run=args.dry_run)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
