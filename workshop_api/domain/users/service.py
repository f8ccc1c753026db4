"""User service - staff members of a workshop"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import DuplicateRecord
from ...models import User
from .schemas import UserCreate

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    def create_user(self, data: UserCreate) -> User:
        try:
            existing = (
                self.db.query(User)
                .filter(User.tenant_id == self.tenant_id, User.email == data.email)
                .first()
            )
            if existing:
                raise DuplicateRecord(f"User {data.email} already exists", field="email", value=data.email)
            user = User(
                tenant_id=self.tenant_id,
                name=data.name.strip(),
                email=data.email,
                role=data.role.value,
            )
            self.db.add(user)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(f"User {user.id} ({user.role}) created in tenant {self.tenant_id}")
        return user

    def list_users(self, role: Optional[str] = None, active_only: bool = True) -> list[User]:
        query = self.db.query(User).filter(User.tenant_id == self.tenant_id)
        if role:
            query = query.filter(User.role == role)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.name.asc()).all()
