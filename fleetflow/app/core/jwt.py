"""
Caller identity from bearer tokens.

Tokens are issued by the auth service. The dispatch backend only verifies
them and reads `user_id`, which is recorded on trips, maintenance logs and
audit rows. `create_access_token` mints tokens with the same secret for the
smoke-test script and the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fleetflow.app.core.config import settings


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a bearer token and return its claims.

    Only the signature and expiry are checked here; `get_current_user`
    decides which claims are required.

    Returns:
        The claims (`sub`, `user_id`, `exp`), or None for a bad or expired token
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def create_access_token(identity: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign `identity` as the auth service would, expiring after the configured window."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**identity, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)
