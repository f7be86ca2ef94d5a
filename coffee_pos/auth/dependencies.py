from fastapi import HTTPException, status, Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import logging

from coffee_pos.models.user import UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation; missing headers are handled below
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> dict:
    """Dependency to extract and validate JWT token"""
    if not credentials:
        logger.warning("Authentication credentials missing")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing"
        )

    jwt_validator = request.app.state.context.jwt_validator
    payload = jwt_validator.verify_token(credentials.credentials)

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.warning("Token has a malformed sub claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user id"
        )

    role = payload.get("role")
    if role not in UserRole.ALL:
        logger.warning(f"Token carries unknown role: {role}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing role claim"
        )

    logger.debug(f"Authenticated user {payload.get('username')} (user_id: {user_id}, role: {role})")
    return {
        "user_id": user_id,
        "username": payload.get("username"),
        "role": role,
        "payload": payload
    }


def require_roles(*roles: str):
    """Dependency factory to require one of the given roles"""
    async def dependency(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(roles)}"
            )
        return current_user
    return dependency


require_manager_or_admin = require_roles(UserRole.MANAGER, UserRole.ADMIN)
require_admin = require_roles(UserRole.ADMIN)
