"""Authentication: credential accounts, session tokens, and principal resolution.

A ``Principal`` is the only thing the rest of the service layer knows about
the caller. It is rebuilt from the user row on every request so that role
changes and the forced-password-change flag take effect immediately.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from draftroom.config import Settings
from draftroom.database import atomic
from draftroom.errors import ConflictError, NotAuthenticatedError, NotFoundError, ValidationFailedError
from draftroom.models import User
from draftroom.services.security import (
    hash_password,
    issue_session_token,
    read_session_token,
    verify_password,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    id: str
    role: str = "user"
    must_change_password: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, must_change_password=user.must_change_password)


def find_identity_conflict(db: Session, email: str | None, username: str | None,
                           exclude_id: str | None = None) -> User | None:
    """Return another user already holding *email* or *username*."""
    clauses = []
    if email:
        clauses.append(func.lower(User.email) == email.lower())
    if username:
        clauses.append(User.username == username)
    if not clauses:
        return None
    query = db.query(User).filter(or_(*clauses))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first()


class AuthService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def register(self, email: str, username: str, password: str) -> User:
        with atomic(self.db):
            if find_identity_conflict(self.db, email, username):
                raise ConflictError("Email or username is already taken")
            user = User(
                email=email,
                username=username,
                password_hash=hash_password(password, self.settings.BCRYPT_ROUNDS),
                provider="email",
                role="user",
            )
            self.db.add(user)
        logger.info("Registered user %s", user.username)
        return user

    def authenticate(self, identifier: str, password: str) -> User:
        """Resolve *identifier* (email or username) and verify *password*."""
        user = (
            self.db.query(User)
            .filter(or_(func.lower(User.email) == identifier.lower(), User.username == identifier))
            .first()
        )
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login for %r", identifier)
            raise NotAuthenticatedError("Invalid email/username or password")
        return user

    def issue_token(self, user: User) -> str:
        return issue_session_token(user.id, self.settings.SECRET_KEY)

    def resolve_principal(self, token: str | None) -> Principal:
        if not token:
            raise NotAuthenticatedError()
        user_id = read_session_token(token, self.settings.SECRET_KEY, self.settings.session_ttl_seconds)
        if user_id is None:
            raise NotAuthenticatedError("Session is invalid or has expired")
        user = self.db.get(User, user_id)
        if user is None:
            raise NotAuthenticatedError("Session user no longer exists")
        return Principal.from_user(user)

    def get_user(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> User:
        with atomic(self.db):
            user = self.get_user(user_id)
            if not user.password_hash:
                raise ValidationFailedError("This account has no password to change")
            if not verify_password(current_password, user.password_hash):
                raise ValidationFailedError("Current password is incorrect")
            user.password_hash = hash_password(new_password, self.settings.BCRYPT_ROUNDS)
            user.must_change_password = False
        logger.info("User %s changed their password", user_id[:8])
        return user
