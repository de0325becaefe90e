"""
FastAPI dependencies: caller identity and the per-request unit of work.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from fleetflow.app.core.jwt import decode_access_token
from fleetflow.app.db.session import get_db
from fleetflow.app.db.unit_of_work import SqlAlchemyUnitOfWork
from fleetflow.app.domain.dispatch.ports import AbstractUnitOfWork

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Resolve the authenticated caller from the bearer token.

    Token issuance, revocation and roles belong to the auth service; here
    we only check the signature and expiry and require a `user_id`.

    Raises:
        HTTPException: 401 if the token is invalid or carries no user id
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("user_id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


async def get_unit_of_work(db: AsyncSession = Depends(get_db)) -> AbstractUnitOfWork:
    """One unit of work per request, bound to the request's session."""
    return SqlAlchemyUnitOfWork(db)
