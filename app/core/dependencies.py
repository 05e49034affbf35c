from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.auth_utils import decode_token
from app.db.session import get_db  # noqa: F401
from app.services.auto_cancellation import scanner
from app.services.notifications import dispatcher

security = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """Caller identity taken from the bearer token.

    For couples and vendors ``user_id`` is the couple / vendor id the
    bookings are keyed on.
    """

    user_id: int
    role: str


def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    payload = decode_token(credentials.credentials)

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    return Principal(user_id=user_id, role=payload["role"])


def require_role(*roles: str):
    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {' or '.join(roles)} accounts can do this",
            )
        return principal

    return checker


def get_notifier():
    return dispatcher


def get_scanner():
    return scanner
