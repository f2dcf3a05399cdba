from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from app.core.config import settings
from app.core.exceptions import ForbiddenError, UnauthorizedError

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller. ``user_id`` is the engineer id for field users."""
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


def decode_token(token: str) -> Dict[str, Any]:
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")


def create_access_token(user_id: str, email: Optional[str] = None, extra: Optional[dict] = None) -> str:
    """Mint a token in the identity provider's format; used by tests and local tooling."""
    payload: Dict[str, Any] = {"sub": user_id}
    if email:
        payload["email"] = email
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def ensure_engineer_access(principal: Principal, engineer_id: str) -> None:
    """Engineers may act only as themselves; admins may act for anyone."""
    if principal.is_admin or principal.user_id == engineer_id:
        return
    raise ForbiddenError("Access denied", details={"message": "You can only access your own jobs"})
