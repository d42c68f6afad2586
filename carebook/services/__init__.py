# Services package (re-export auth helpers for stable imports)
from .auth import (
    create_jwt_token,
    create_refresh_token,
    decode_jwt_token,
    hash_password,
    verify_password,
    verify_refresh_token,
)

__all__ = [
    "create_jwt_token",
    "create_refresh_token",
    "decode_jwt_token",
    "hash_password",
    "verify_password",
    "verify_refresh_token",
]
