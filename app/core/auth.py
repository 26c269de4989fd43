from dataclasses import dataclass
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.security import verify_token

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ActingSession:
    """Identity of the caller, as asserted by the external auth provider"""
    user_id: uuid.UUID
    organization_id: uuid.UUID


async def get_current_session(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> ActingSession:
    """Dependency resolving the bearer token into an ActingSession"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return ActingSession(
            user_id=uuid.UUID(payload["sub"]),
            organization_id=uuid.UUID(payload["org"]),
        )
    except (KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is missing user or organization claims",
            headers={"WWW-Authenticate": "Bearer"},
        )
