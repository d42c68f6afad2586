from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import jwt
from passlib.context import CryptContext
from carebook.core.config import settings

PLACEHOLDER_SECRET = "change-me-in-prod"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def _ensure_secret() -> None:
    if not settings.SECRET_KEY or settings.SECRET_KEY == PLACEHOLDER_SECRET:
        raise ValueError("SECRET_KEY not properly configured")


def create_jwt_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """Create an access token; ``data`` must carry ``sub``."""
    _ensure_secret()
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(data: Dict[str, Any], days: Optional[int] = None) -> str:
    _ensure_secret()
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(days=days or settings.REFRESH_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a token. Returns None when it is invalid or expired."""
    if not settings.SECRET_KEY or settings.SECRET_KEY == PLACEHOLDER_SECRET:
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def verify_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    payload = decode_jwt_token(token)
    if payload and payload.get("type") == "refresh":
        return payload
    return None
