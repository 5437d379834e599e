from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.security import (
    security, verify_token, AuthenticationError, Actor, TokenPayload
)
from ..services.scheduling_service import SchedulingService

async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    token = credentials.credentials

    # Verify token
    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_actor(
    token_payload: TokenPayload = Depends(get_current_user_token)
) -> Actor:
    """The (id, role) pair the scheduling core trusts for this request."""
    if token_payload.sub is None or token_payload.role is None:
        raise AuthenticationError("Invalid token payload")

    return Actor(id=token_payload.sub, role=token_payload.role)

def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Scheduling service bound to the request's database session."""
    return SchedulingService(db)
