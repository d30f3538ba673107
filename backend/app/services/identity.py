"""Identity directory lookups used by the lifecycle engine.

The engine never trusts a role claimed by the caller; it resolves the user id
against the ``users`` table on every operation.
"""

from __future__ import annotations

from typing import Iterable, List

from sqlalchemy.orm import Session

from .. import crud, models
from ..models import UserRole, UserStatus
from ..utils.errors import Forbidden, NotFound


def get_user(db: Session, user_id: int) -> models.User:
    """Return an active or pending user, or raise."""
    user = crud.user.get_user(db, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found.", field="user_id")
    if user.status == UserStatus.SUSPENDED:
        raise Forbidden(f"User {user_id} is suspended.")
    return user


def resolve_role(db: Session, user_id: int) -> UserRole:
    return get_user(db, user_id).role


def require_role(db: Session, user_id: int, roles: Iterable[UserRole]) -> models.User:
    user = get_user(db, user_id)
    allowed = set(roles)
    if user.role not in allowed:
        wanted = "/".join(sorted(r.value for r in allowed))
        raise Forbidden(f"Only {wanted} users may perform this action.")
    return user


def admin_ids(db: Session) -> List[int]:
    return [u.id for u in crud.user.get_admins(db)]
