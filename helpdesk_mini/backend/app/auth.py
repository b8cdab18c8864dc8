# helpdesk_mini/backend/app/auth.py
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import utils
from .config import ACCESS_TOKEN_EXPIRE_DAYS, JWT_ALGORITHM, JWT_SECRET
from .db import get_db
from .errors import InvalidToken, TokenRequired
from .models.user import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token (7 days unless told otherwise)."""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode.update({"exp": utils.utcnow() + expires_delta})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise TokenRequired()

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise TokenRequired()
    return parts[1]


def resolve_token(db: Session, token: str) -> User:
    """Decode a bearer token and load its user, or raise InvalidToken."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise InvalidToken()

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise InvalidToken()

    user = db.get(User, user_id) if utils.fits_integer(user_id) else None
    if user is None:
        logger.info("Token for unknown user id=%s rejected", user_id)
        raise InvalidToken()
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """FastAPI dependency: the authenticated caller."""
    return resolve_token(db, _bearer_token(request))
