# helpdesk_mini/backend/app/services/identity.py
import logging
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import utils
from ..auth import get_password_hash, token_for, verify_password
from ..constants import (
    DEFAULT_ROLE,
    PASSWORD_MIN_LENGTH,
    ROLES,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from ..errors import Duplicate, FieldRequired, InvalidCredentials, ValidationFailed
from ..models.user import User

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _duplicate_field(db: Session, username: str, email: str) -> Optional[str]:
    existing = (
        db.query(User)
        .filter(or_(User.email == email, User.username == username))
        .first()
    )
    if existing is None:
        return None
    return "email" if existing.email == email else "username"


def register(
    db: Session,
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    role: Optional[str] = None,
) -> Tuple[User, str]:
    """Create an identity and issue its first token."""
    if not username:
        raise FieldRequired("username")
    if not email:
        raise FieldRequired("email")
    if not password:
        raise FieldRequired("password")

    username = username.strip()
    email = _normalize_email(email)
    role = (role or DEFAULT_ROLE).strip().lower()

    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationFailed(
            f"Username must be between {USERNAME_MIN_LENGTH} and "
            f"{USERNAME_MAX_LENGTH} characters",
            field="username",
        )
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailed(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
            field="password",
        )
    if role not in ROLES:
        raise ValidationFailed(
            f"Invalid role '{role}'. Allowed: {', '.join(ROLES)}",
            field="role",
        )

    duplicate = _duplicate_field(db, username, email)
    if duplicate:
        raise Duplicate(duplicate)

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        created_at=utils.utcnow(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration
        db.rollback()
        raise Duplicate(_duplicate_field(db, username, email) or "username")
    db.refresh(user)

    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return user, token_for(user)


def authenticate(
    db: Session, email: Optional[str], password: Optional[str]
) -> Tuple[User, str]:
    if not email:
        raise FieldRequired("email")
    if not password:
        raise FieldRequired("password")

    user = db.query(User).filter(User.email == _normalize_email(email)).first()
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentials()

    return user, token_for(user)
