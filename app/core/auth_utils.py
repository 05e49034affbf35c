from jose import jwt, JWTError
from fastapi import HTTPException

from app.core.config import JWT_ALGORITHM, JWT_SECRET

ROLES = ("couple", "vendor", "admin")


def decode_token(token: str):
    """Validate a bearer token issued by the auth service."""
    if not JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT_SECRET is not configured")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if "sub" not in payload or "role" not in payload:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    if payload["role"] not in ROLES:
        raise HTTPException(status_code=401, detail="Invalid role")

    return payload
