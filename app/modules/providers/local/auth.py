"""In-process auth provider.

Passwords are stored as PBKDF2-SHA256 hashes; session and refresh tokens
are random URL-safe strings held in memory. Password reset codes are kept
in ``reset_outbox`` (email -> code) in place of a real delivery channel.
"""

import asyncio
import hashlib
import hmac
import secrets
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple

import structlog
from email_validator import EmailNotValidError, validate_email

from infrastructure.resilience.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from modules.providers.contracts import AuthProvider
from modules.providers.models import (
    AuthSession,
    HealthCheckResult,
    User,
    UserPage,
    utcnow,
)

logger = structlog.get_logger()

HASH_ALGORITHM = "pbkdf2_sha256"
HASH_ITERATIONS = 120_000
MIN_PASSWORD_LENGTH = 8
UPDATABLE_FIELDS = {"email", "name", "disabled", "metadata"}


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), HASH_ITERATIONS
    )
    return f"{HASH_ALGORITHM}${HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


def normalize_email(email: str) -> str:
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidArgumentError(f"Invalid email address: {e}") from e


class LocalAuthProvider(AuthProvider):
    """Auth backed by in-memory user and session tables.

    Args:
        token_ttl_seconds: Lifetime of session tokens
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        token_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.token_ttl = timedelta(seconds=token_ttl_seconds)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._users: Dict[str, User] = {}
        self._emails: Dict[str, str] = {}
        self._password_hashes: Dict[str, str] = {}
        self._tokens: Dict[str, Tuple[str, datetime]] = {}
        self._refresh_tokens: Dict[str, str] = {}
        self._reset_codes: Dict[str, str] = {}
        self.reset_outbox: Dict[str, str] = {}

    def _issue_session(self, user: User) -> AuthSession:
        token = secrets.token_urlsafe(32)
        refresh = secrets.token_urlsafe(32)
        expires_at = self._clock() + self.token_ttl
        self._tokens[token] = (user.id, expires_at)
        self._refresh_tokens[refresh] = user.id
        return AuthSession(
            user=replace(user), token=token, refresh_token=refresh, expires_at=expires_at
        )

    def _revoke_sessions(self, user_id: str) -> None:
        self._tokens = {t: v for t, v in self._tokens.items() if v[0] != user_id}
        self._refresh_tokens = {
            t: uid for t, uid in self._refresh_tokens.items() if uid != user_id
        }

    @staticmethod
    def _check_password(password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

    async def sign_up(
        self, email: str, password: str, name: Optional[str] = None
    ) -> AuthSession:
        email = normalize_email(email)
        self._check_password(password)
        async with self._lock:
            if email.lower() in self._emails:
                raise ConflictError(f"Email already registered: {email}")
            now = self._clock()
            user = User(
                id=uuid.uuid4().hex, email=email, name=name, created_at=now, updated_at=now
            )
            self._users[user.id] = user
            self._emails[email.lower()] = user.id
            self._password_hashes[user.id] = hash_password(password)
            logger.info("local_user_signed_up", user_id=user.id)
            return self._issue_session(user)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        user_id = self._emails.get(email.strip().lower())
        encoded = self._password_hashes.get(user_id or "")
        if user_id is None or encoded is None or not verify_password(password, encoded):
            raise UnauthenticatedError("Invalid email or password")
        user = self._users[user_id]
        if user.disabled:
            raise PermissionDeniedError(f"User {user_id} is disabled")
        async with self._lock:
            return self._issue_session(user)

    async def sign_out(self, user_id: str) -> None:
        async with self._lock:
            self._revoke_sessions(user_id)

    async def verify_token(self, token: str) -> User:
        entry = self._tokens.get(token)
        if entry is None:
            raise UnauthenticatedError("Unknown or revoked token")
        user_id, expires_at = entry
        if expires_at <= self._clock():
            self._tokens.pop(token, None)
            raise UnauthenticatedError("Token expired")
        user = self._users.get(user_id)
        if user is None:
            raise UnauthenticatedError("Token owner no longer exists")
        return replace(user)

    async def refresh_token(self, refresh_token: str) -> AuthSession:
        async with self._lock:
            user_id = self._refresh_tokens.pop(refresh_token, None)
            if user_id is None or user_id not in self._users:
                raise UnauthenticatedError("Unknown or revoked refresh token")
            return self._issue_session(self._users[user_id])

    async def reset_password(self, email: str) -> None:
        user_id = self._emails.get(email.strip().lower())
        if user_id is None:
            # Unknown addresses are not disclosed to the caller
            logger.info("local_password_reset_unknown_email")
            return
        code = secrets.token_urlsafe(16)
        async with self._lock:
            self._reset_codes[code] = user_id
            self.reset_outbox[self._users[user_id].email] = code
        logger.info("local_password_reset_requested", user_id=user_id)

    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        self._check_password(new_password)
        async with self._lock:
            user_id = self._reset_codes.pop(code, None)
            if user_id is None or user_id not in self._users:
                raise InvalidArgumentError("Invalid or expired reset code")
            self._password_hashes[user_id] = hash_password(new_password)
            self._revoke_sessions(user_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return replace(user) if user else None

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Fields cannot be updated: {sorted(unknown)}")
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            changes = dict(updates)
            if "email" in changes:
                email = normalize_email(changes["email"])
                owner = self._emails.get(email.lower())
                if owner is not None and owner != user_id:
                    raise ConflictError(f"Email already registered: {email}")
                del self._emails[user.email.lower()]
                self._emails[email.lower()] = user_id
                changes["email"] = email
            updated = replace(user, updated_at=self._clock(), **changes)
            self._users[user_id] = updated
            return replace(updated)

    async def delete_user(self, user_id: str) -> None:
        async with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            self._emails.pop(user.email.lower(), None)
            self._password_hashes.pop(user_id, None)
            self._revoke_sessions(user_id)

    async def list_users(
        self, page_size: int = 100, page_token: Optional[str] = None
    ) -> UserPage:
        if page_size <= 0:
            raise InvalidArgumentError("page_size must be positive")
        try:
            start = int(page_token) if page_token else 0
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid page token: {page_token!r}") from e
        ordered = sorted(self._users.values(), key=lambda u: (u.created_at, u.id))
        end = start + page_size
        page = [replace(u) for u in ordered[start:end]]
        return UserPage(users=page, next_page_token=str(end) if end < len(ordered) else None)

    async def import_user(self, user: User, password_hash: Optional[str] = None) -> User:
        email = normalize_email(user.email)
        async with self._lock:
            if user.id in self._users:
                raise ConflictError(f"User id already exists: {user.id}")
            if email.lower() in self._emails:
                raise ConflictError(f"Email already registered: {email}")
            imported = replace(user, email=email)
            self._users[user.id] = imported
            self._emails[email.lower()] = user.id
            if password_hash:
                self._password_hashes[user.id] = password_hash
            return replace(imported)

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True,
            status="healthy",
            details={"users": len(self._users), "active_tokens": len(self._tokens)},
        )
