from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..services import identity
from ..utils.errors import NotFound


def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the caller from the ``X-User-Id`` header.

    Authentication happens upstream; by the time a request reaches the API
    the gateway has replaced any client-supplied header with the verified id.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "message": "Could not validate credentials",
            "field_errors": {"X-User-Id": "required"},
        },
    )
    if not x_user_id:
        raise credentials_exception
    try:
        user_id = int(x_user_id.strip())
    except ValueError:
        raise credentials_exception
    try:
        # Suspended users are rejected by the identity directory (403)
        return identity.get_user(db, user_id)
    except NotFound:
        raise credentials_exception


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
