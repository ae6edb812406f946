"""Password hashing, session tokens and API keys."""

import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from config import settings
from errors import UnauthorizedError


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def generate_api_key() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def create_access_token(user_id: int) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id embedded in a session token.

    Raises:
        UnauthorizedError: Expired, tampered or malformed token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expirado")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Token inválido")

    user_id = payload.get("userId")
    if not isinstance(user_id, int):
        raise UnauthorizedError("Token inválido")
    return user_id
