#!/usr/bin/env python3
"""
Print an access token for local development.

Usage:
    python scripts/issue_token.py                 # random user
    python scripts/issue_token.py --user-id <uuid> --minutes 120

Signs with JWT_SECRET from .env / the environment.
"""

import sys
import uuid
from datetime import timedelta
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def main():
    import argparse

    from src.config.settings import get_settings
    from src.infrastructure.auth.tokens import create_access_token

    parser = argparse.ArgumentParser(description='Issue a Tubely access token')
    parser.add_argument('--user-id', type=uuid.UUID, default=None, help='Subject (defaults to a new UUID)')
    parser.add_argument('--minutes', type=int, default=None, help='Lifetime in minutes')
    args = parser.parse_args()

    settings = get_settings()
    if not settings.jwt_secret:
        print("ERROR: JWT_SECRET is not set")
        sys.exit(1)

    user_id = args.user_id or uuid.uuid4()
    minutes = args.minutes or settings.jwt_expiration_minutes

    token = create_access_token(
        user_id,
        settings.jwt_secret,
        expires_in=timedelta(minutes=minutes),
        issuer=settings.jwt_issuer,
    )

    print(f"user_id: {user_id}", file=sys.stderr)
    print(token)


if __name__ == '__main__':
    main()
