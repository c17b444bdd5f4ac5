"""
FastAPI dependencies for authentication and database access.
"""

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from identity_service.services.identity import AccessClaims, IdentityService

# Security scheme
security = HTTPBearer(auto_error=False)


def get_identity_service(request: Request) -> IdentityService:
    """The service instance built at startup."""
    return request.app.state.identity_service


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency."""
    async with request.app.state.session_factory() as session:
        yield session


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    service: IdentityService = Depends(get_identity_service),
) -> AccessClaims:
    """
    Decode the bearer access token.
    Raises 401 if missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = service.verify_token(credentials.credentials)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return claims
