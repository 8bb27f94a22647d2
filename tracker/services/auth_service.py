"""Authentication service."""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from tracker.core.config import settings

# JWT settings
ALGORITHM = "HS256"

REQUIRED_CLAIMS = ("id", "email", "organization_id")


class AuthService:
    """Service for issuing and verifying bearer tokens."""

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create a JWT access token.

        Args:
            data: Claims to encode (id, email, organization_id)
            expires_delta: Token expiration time

        Returns:
            Encoded JWT token
        """
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)
        return encoded_jwt

    @staticmethod
    def create_user_token(user_id: int, email: str, organization_id: int) -> str:
        """Token carrying the claims the API expects for a user."""
        return AuthService.create_access_token(
            {"id": user_id, "email": email, "organization_id": organization_id}
        )

    @staticmethod
    def verify_access_token(token: str) -> Optional[dict]:
        """
        Verify and decode a JWT access token.

        Args:
            token: JWT token to verify

        Returns:
            Decoded token payload, or None if invalid, expired or missing claims
        """
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            return None

        if any(payload.get(claim) is None for claim in REQUIRED_CLAIMS):
            return None
        return payload
