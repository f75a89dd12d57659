"""
Campus Delivery: Security helper (JWT decode only, shared secret)
"""
from typing import Any

from jose import jwt

from campus_delivery.core.config import Settings


def decode_token(token: str, settings: Settings) -> dict[str, Any]:
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
