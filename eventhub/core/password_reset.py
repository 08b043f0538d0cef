"""
Password reset requests.

Two flavors share one table:

* ``token``: a random token delivered as an emailed link. Only its SHA-256
  digest is stored.
* ``direct``: the server's own record that step one of the in-app flow
  succeeded for an email. Step two must consume this record; the client's
  claim that the email was verified is never trusted.

Both are single use. Consumption is a conditional UPDATE whose row count
decides the winner, so concurrent redemptions of one request cannot both
succeed. A completed reset closes every other pending request of that user.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import Session

from eventhub.db.session import Base
from eventhub.utils.locks import password_reset_locks
from eventhub.utils.rate_limit import SlidingWindowRateLimiter
from .config import settings
from .security import (
    User,
    get_user_by_email,
    get_user_by_id,
    hash_token,
    set_user_password,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


KIND_TOKEN = "token"
KIND_DIRECT = "direct"


class PasswordResetToken(Base):
    """A pending password reset for one user."""
    __tablename__ = "password_reset_tokens"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    token_hash = Column(String, unique=True, index=True, nullable=False)
    kind = Column(String, nullable=False, default=KIND_TOKEN)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


email_rate_limiter = SlidingWindowRateLimiter(
    settings.forgot_password_max_per_email, settings.forgot_password_window_seconds
)
ip_rate_limiter = SlidingWindowRateLimiter(
    settings.forgot_password_max_per_ip, settings.forgot_password_window_seconds
)


def allow_forgot_password(email: str, client_ip: Optional[str]) -> bool:
    """Apply the per-email and per-IP forgot-password limits."""
    if client_ip and not ip_rate_limiter.hit(client_ip):
        logger.warning("Forgot-password rate limit reached for client %s", client_ip)
        return False
    if not email_rate_limiter.hit(email.strip().lower()):
        logger.warning("Forgot-password rate limit reached for an email address")
        return False
    return True


def _direct_key(email: str) -> str:
    # Direct requests are looked up by email, so the "hash" is derived from it
    return hash_token(f"direct:{email.strip().lower()}")


def issue_reset_token(db: Session, user: User) -> str:
    """Create an emailed-link reset request and return the plaintext token."""
    token = secrets.token_urlsafe(32)
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=hash_token(token),
            kind=KIND_TOKEN,
            expires_at=_utcnow() + timedelta(minutes=settings.reset_token_ttl_minutes),
        )
    )
    db.commit()
    return token


def record_direct_request(db: Session, user: User) -> None:
    """Remember that step one succeeded for ``user``; replaces any earlier record."""
    key = _direct_key(user.email)
    db.query(PasswordResetToken).filter(PasswordResetToken.token_hash == key).delete(
        synchronize_session=False
    )
    db.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=key,
            kind=KIND_DIRECT,
            expires_at=_utcnow() + timedelta(minutes=settings.direct_reset_ttl_minutes),
        )
    )
    db.commit()


def _consume(db: Session, token_hash: str, kind: str) -> Optional[str]:
    """Atomically mark an active request used; returns its user id or None."""
    record = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.token_hash == token_hash, PasswordResetToken.kind == kind)
        .first()
    )
    if record is None:
        return None

    now = _utcnow()
    claimed = (
        db.query(PasswordResetToken)
        .filter(
            PasswordResetToken.id == record.id,
            PasswordResetToken.used_at.is_(None),
            PasswordResetToken.expires_at > now,
        )
        .update({"used_at": now}, synchronize_session=False)
    )
    db.commit()
    if claimed != 1:
        return None
    return record.user_id


def _close_pending_requests(db: Session, user_id: str) -> int:
    """Mark every still-unused request of the user as used."""
    closed = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.user_id == user_id, PasswordResetToken.used_at.is_(None))
        .update({"used_at": _utcnow()}, synchronize_session=False)
    )
    db.commit()
    if closed:
        logger.info("Closed %d pending password reset request(s) for user %s", closed, user_id)
    return closed


def reset_password_with_token(db: Session, token: str, new_password: str) -> bool:
    """Redeem an emailed token. False when it is unknown, used or expired."""
    user_id = _consume(db, hash_token(token), KIND_TOKEN)
    if user_id is None:
        return False
    user = get_user_by_id(db, user_id)
    if user is None:
        return False
    with password_reset_locks.acquire(user.id):
        _close_pending_requests(db, user.id)
        set_user_password(db, user, new_password)
    return True


def reset_password_direct(db: Session, email: str, new_password: str) -> bool:
    """
    Finish the in-app flow for ``email``.

    The server looks up and consumes its own step-one record; a request for
    an email that never passed step one, or whose window has passed, fails.
    """
    user = get_user_by_email(db, email)
    if user is None:
        return False
    with password_reset_locks.acquire(user.id):
        user_id = _consume(db, _direct_key(user.email), KIND_DIRECT)
        if user_id != user.id:
            return False
        _close_pending_requests(db, user.id)
        set_user_password(db, user, new_password)
    return True


def build_reset_link(token: str) -> str:
    return f"{settings.app_base_url.rstrip('/')}/reset-password?token={token}"


def deliver_reset_link(email: str, link: str) -> None:
    """
    Hand the reset link to the outbound channel.

    No mail transport is wired in; the link is only logged in debug mode so
    local developers can complete the flow.
    """
    logger.info("Password reset link issued")
    if settings.debug:
        logger.debug("Reset link for %s: %s", email, link)


def init_password_reset_tables():
    from eventhub.db.session import get_engine
    Base.metadata.create_all(bind=get_engine(), tables=[PasswordResetToken.__table__])
