"""
Authentication module for EventHub.

Provides bcrypt password hashing and server-side sessions referenced by an
opaque cookie. Only the SHA-256 digest of a session token is stored, so a
leaked sessions table cannot be replayed.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import bcrypt
from fastapi import Depends, HTTPException, Request, Response, status
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, func, or_
from sqlalchemy.orm import Session

from eventhub.db.session import Base, get_db
from .config import settings

logger = logging.getLogger(__name__)

VALID_ROLES = {"admin", "organizer", "attendee", "sponsor", "service_provider"}
DEFAULT_ROLE = "attendee"


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class User(Base):
    """User model for authentication."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=True)
    # Nullable for accounts provisioned by an external identity provider
    hashed_password = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    role = Column(String, nullable=False, server_default=DEFAULT_ROLE, default=DEFAULT_ROLE)
    bio = Column(Text, nullable=True)
    phone = Column(String, nullable=True)
    city = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class UserSession(Base):
    """Server-side session; ``id`` is the digest of the cookie value."""
    __tablename__ = "user_sessions"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store opaque tokens."""
    return hashlib.sha256(token.encode()).hexdigest()


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """Authenticate by username or email."""
    identifier = username.strip()
    user = (
        db.query(User)
        .filter(or_(User.username == identifier, func.lower(User.email) == identifier.lower()))
        .first()
    )
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_user(
    db: Session,
    email: str,
    password: Optional[str],
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    role: str = DEFAULT_ROLE,
) -> User:
    """Create a new user."""
    if role not in VALID_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid role '{role}'. Must be one of {sorted(VALID_ROLES)}"
        )

    if get_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )

    if username and db.query(User).filter(User.username == username).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already exists"
        )

    user = User(
        email=email.strip().lower(),
        username=username,
        hashed_password=get_password_hash(password) if password else None,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def set_user_role(db: Session, user_id: str, role: str) -> User:
    """Assign a role to the given user."""
    if role not in VALID_ROLES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")

    user = get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found"
        )

    user.role = role
    db.commit()
    db.refresh(user)
    return user


def set_user_password(db: Session, user: User, new_password: str) -> User:
    """Store a new password hash and drop every session of the user."""
    user.hashed_password = get_password_hash(new_password)
    db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    db.refresh(user)
    logger.info("Password changed for user %s; existing sessions revoked", user.id)
    return user


def delete_user(db: Session, user_id: str) -> bool:
    """Delete a user by ID. Returns True if deleted, False if not found."""
    user = get_user_by_id(db, user_id)
    if not user:
        return False

    db.query(UserSession).filter(UserSession.user_id == user_id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    return True


def create_session(db: Session, user: User) -> str:
    """Create a session for ``user`` and return the opaque cookie value."""
    token = secrets.token_urlsafe(32)
    record = UserSession(
        id=hash_token(token),
        user_id=user.id,
        expires_at=_utcnow() + timedelta(hours=settings.session_ttl_hours),
    )
    db.add(record)
    db.commit()
    return token


def resolve_session(db: Session, token: Optional[str]) -> Optional[User]:
    """Return the user behind a session token, or None when missing or expired."""
    if not token:
        return None
    record = db.query(UserSession).filter(UserSession.id == hash_token(token)).first()
    if not record:
        return None
    if as_utc(record.expires_at) <= _utcnow():
        db.delete(record)
        db.commit()
        return None
    user = get_user_by_id(db, record.user_id)
    if not user or not user.is_active:
        return None
    return user


def end_session(db: Session, token: Optional[str]) -> None:
    """Invalidate a session token (idempotent)."""
    if not token:
        return
    db.query(UserSession).filter(UserSession.id == hash_token(token)).delete(synchronize_session=False)
    db.commit()


def extract_session_token(request: Request) -> Optional[str]:
    # Prefer cookie for browser flows
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_hours * 60 * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """Current user when a valid session is present, else None."""
    return resolve_session(db, extract_session_token(request))


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Get the current authenticated user from the session cookie."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that ensures the current user has admin role."""
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user


def init_auth_tables():
    """Initialize authentication tables."""
    from eventhub.db.session import get_engine
    engine = get_engine()
    Base.metadata.create_all(bind=engine, tables=[User.__table__, UserSession.__table__])
