from sqlalchemy.orm import Session
from typing import List, Optional

from .. import models


class CRUDUser:
    def get_user(self, db: Session, user_id: int) -> Optional[models.User]:
        return db.query(models.User).filter(models.User.id == user_id).first()

    def get_admins(self, db: Session) -> List[models.User]:
        return (
            db.query(models.User)
            .filter(
                models.User.role == models.UserRole.ADMIN,
                models.User.status == models.UserStatus.ACTIVE,
            )
            .order_by(models.User.id)
            .all()
        )


user = CRUDUser()  # Create an instance for easy import
