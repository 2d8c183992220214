# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

WHY: Every sale and stock movement is attributed to a user id. Passwords are
stored as bcrypt hashes only.

SCOPE: credential verification only. Session/token issuance is handled by
the host application.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import bcrypt

from ..models import User, USER_ROLES
from ..errors import DuplicateConstraintError, ValidationError
from ..validation import require_choice, require_text
from pos.time_utils import utcnow
from .concurrency import unit_of_work
from .identifier_service import new_id

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres",
            details={"field": "password"},
        )


def hash_password(password: str, rounds: int = 12) -> str:
    """Validate then hash with bcrypt; returns the hash as str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash verifies as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


class AuthService:
    def __init__(
        self,
        session,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        bcrypt_rounds: int = 12,
    ):
        self.session = session
        self.clock = clock
        self.id_factory = id_factory
        self.bcrypt_rounds = bcrypt_rounds

    def create_user(self, *, username: str, password: str, full_name: str, role: str = "cashier") -> User:
        username = require_text(username, "username")
        full_name = require_text(full_name, "full_name")
        role = require_choice(role, "role", USER_ROLES)

        if self.session.query(User.id).filter_by(username=username).first() is not None:
            raise DuplicateConstraintError(
                f"El usuario '{username}' ya existe",
                details={"username": username},
            )

        user = User(
            id=self.id_factory(),
            username=username,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            role=role,
            full_name=full_name,
            is_active=True,
            created_at=self.clock(),
        )
        with unit_of_work(self.session):
            self.session.add(user)

        logger.info("User created username=%s role=%s", username, role)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self.session.query(User).filter_by(id=user_id).first()

    def list_users(self) -> list[User]:
        return self.session.query(User).order_by(User.username.asc()).all()

    def authenticate(self, username: str, password: str) -> User | None:
        """Active user whose password matches, else None."""
        if not username or not password:
            return None

        user = self.session.query(User).filter_by(username=username.strip()).first()
        if user is None or not user.is_active:
            return None

        if not verify_password(password, user.password_hash):
            logger.warning("Failed login for username=%s", username)
            return None
        return user
