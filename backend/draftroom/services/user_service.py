"""Admin user directory: list, create, edit, and delete accounts."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from draftroom.config import Settings
from draftroom.database import atomic
from draftroom.errors import ConflictError, NotFoundError, ValidationFailedError
from draftroom.models import Project, User
from draftroom.services.auth_service import Principal, find_identity_conflict
from draftroom.services.security import hash_password

logger = logging.getLogger(__name__)


@dataclass
class UserPage:
    users: list[tuple[User, int]]  # (user, project_count)
    total: int


class UserDirectory:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def _project_counts(self, user_ids: list[str]) -> dict[str, int]:
        if not user_ids:
            return {}
        return dict(
            self.db.query(Project.owner_id, func.count(Project.id))
            .filter(Project.owner_id.in_(user_ids))
            .group_by(Project.owner_id)
            .all()
        )

    def list_users(self, page: int = 1, page_size: int = 20, search: str | None = None) -> UserPage:
        query = self.db.query(User)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(User.email.ilike(term), User.username.ilike(term)))
        total = query.count()
        users = (
            query.order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        counts = self._project_counts([u.id for u in users])
        return UserPage(users=[(u, counts.get(u.id, 0)) for u in users], total=total)

    def get_user(self, user_id: str) -> tuple[User, int]:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user, self._project_counts([user.id]).get(user.id, 0)

    def create_user(self, email: str, username: str, password: str, role: str = "user") -> User:
        """Create an account that must change its password on first login."""
        with atomic(self.db):
            if find_identity_conflict(self.db, email, username):
                raise ConflictError("Email or username is already taken")
            user = User(
                email=email,
                username=username,
                password_hash=hash_password(password, self.settings.BCRYPT_ROUNDS),
                role=role,
                provider="email",
                must_change_password=True,
            )
            self.db.add(user)
        logger.info("Admin created user %s (%s)", user.username, user.role)
        return user

    def update_user(self, user_id: str, changes: dict) -> User:
        with atomic(self.db):
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            if changes.get("email") or changes.get("username"):
                conflict = find_identity_conflict(
                    self.db, changes.get("email"), changes.get("username"), exclude_id=user_id,
                )
                if conflict:
                    raise ConflictError("Email or username is already taken")
            password = changes.pop("password", None)
            if password:
                user.password_hash = hash_password(password, self.settings.BCRYPT_ROUNDS)
            for field, value in changes.items():
                setattr(user, field, value)
        logger.info("Admin updated user %s", user_id[:8])
        return user

    def delete_user(self, user_id: str, acting: Principal) -> None:
        if user_id == acting.id:
            raise ValidationFailedError("You cannot delete your own account")
        with atomic(self.db):
            user = self.db.get(User, user_id)
            if user is None:
                raise NotFoundError("User not found")
            self.db.delete(user)
        logger.info("Admin %s deleted user %s", acting.id[:8], user_id[:8])
