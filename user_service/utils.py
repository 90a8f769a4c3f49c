"""Utility helpers for the user service: password hashing and JWT handling."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)


class PasswordHasher:
    """bcrypt hashing through passlib, with a configurable cost factor."""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hashes a plain password using bcrypt."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """Checks a plain password against a stored hash. A missing or malformed hash never matches."""
        if not hashed_password:
            return False
        try:
            return self._context.verify(plain_password, hashed_password)
        except ValueError as e:
            logger.warning(f"Stored password hash could not be verified: {e}")
            return False


class TokenManager:
    """Issues and validates the HS256 access tokens handed out on login/register."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60 * 24):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_access_token(self, data: Dict) -> str:
        """
        Generates a JWT access token with the given data and an expiration timestamp.

        Args:
            data: Payload to include in the token (e.g. {'sub': user_id}).

        Returns:
            The encoded JWT string.
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[Dict]:
        """
        Decodes and validates a JWT.

        Returns:
            The payload if the token is valid and not expired, otherwise None.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"Token decoding failed: {e}")
            return None

        exp = payload.get("exp")
        if exp is None or datetime.now(timezone.utc) >= datetime.fromtimestamp(exp, tz=timezone.utc):
            logger.warning("Token decoding failed: token has expired.")
            return None
        return payload


def token_claims_for(user) -> Dict:
    """Claims embedded in the access token of a user."""
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "name": user.name,
        "username": user.username,
    }
