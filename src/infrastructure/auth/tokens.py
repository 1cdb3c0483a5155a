"""
Access token handling.

Access tokens are HS256 JWTs whose subject is the user's UUID and whose
issuer is fixed ("tubely-access" by default). Tokens are minted by the
login flow, which lives outside this service; create_access_token exists
for scripts and tests.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_ISSUER = "tubely-access"


class AuthError(Exception):
    """Raised when a request can't be tied to a user."""
    pass


def create_access_token(
    user_id: UUID,
    secret: str,
    expires_in: timedelta = timedelta(hours=1),
    issuer: str = DEFAULT_ISSUER,
) -> str:
    """Sign an access token for user_id."""
    now = datetime.now(timezone.utc)

    payload = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }

    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def validate_access_token(
    token: str,
    secret: str,
    issuer: str = DEFAULT_ISSUER,
) -> UUID:
    """
    Verify signature, expiry and issuer; return the subject as a UUID.

    Raises AuthError for anything that doesn't check out. The reason is
    logged but not returned to the client.
    """
    if not secret:
        # An empty key would accept tokens signed with an empty key.
        raise AuthError("Token validation is not configured")

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            issuer=issuer,
        )
    except ExpiredSignatureError:
        logger.warning("Access token has expired")
        raise AuthError("Token expired")
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise AuthError("Invalid token")

    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        logger.warning("Access token subject is not a UUID")
        raise AuthError("Invalid token subject")
