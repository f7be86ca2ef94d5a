"""
JWT validator for HS256 staff tokens
"""
from datetime import datetime, timedelta, timezone
import jwt
import logging
from typing import Dict, Optional
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class JWTValidator:
    def __init__(self, secret: str, algorithm: str = "HS256", expires_minutes: int = 480):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    def verify_token(self, token: str) -> Dict:
        """
        Verify a bearer token signed with the shared secret.
        Returns decoded token payload if valid.
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "require": ["sub", "exp"],
                }
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired"
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials"
            )

    def create_access_token(
        self,
        user_id: int,
        username: str,
        role: str,
        expires_minutes: Optional[int] = None
    ) -> str:
        """Issue a token (login lives elsewhere; used by tooling and tests)"""
        now = datetime.now(timezone.utc)
        minutes = self.expires_minutes if expires_minutes is None else expires_minutes
        payload = {
            "sub": str(user_id),
            "username": username,
            "role": role,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)
