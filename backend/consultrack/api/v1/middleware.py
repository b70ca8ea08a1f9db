"""
API middleware for authentication and common concerns.
Centralized authentication enforcement for all protected routes.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from consultrack.core.security import decode_access_token
from consultrack.db.session import get_db
from consultrack.db.repositories.user_repository import UserRepository
from consultrack.models.user import UserRole
from consultrack.schemas.actor import Actor

security = HTTPBearer(auto_error=False)


async def require_authentication(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Actor:
    """
    Centralized authentication dependency.
    
    Usage:
        @router.get("/endpoint")
        async def my_endpoint(
            actor: Actor = Depends(require_authentication)
        ):
            ...
    
    Args:
        credentials: HTTP Bearer token credentials (injected by FastAPI)
        db: Database session
        
    Returns:
        The authenticated Actor
        
    Raises:
        HTTPException: If authentication fails
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    user = await UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    
    return Actor.model_validate(user)


def require_roles(*roles: UserRole):
    """
    Dependency factory that admits only actors holding one of `roles`.
    
    Usage:
        actor: Actor = Depends(require_roles(UserRole.ADMIN))
    """
    allowed = set(roles)
    
    async def _check_role(actor: Actor = Depends(require_authentication)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this operation",
            )
        return actor
    
    return _check_role


require_admin = require_roles(UserRole.ADMIN)
require_manager = require_roles(UserRole.MANAGER, UserRole.ADMIN)
