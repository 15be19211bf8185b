"""
Security Helpers

- Password hashing (werkzeug)
- Signed session credentials (itsdangerous)
- Password reset tokens (random value, stored as sha256)
- Role and tenant-ownership checks on an authenticated Principal

Author: Khalil Bannouri
Version: 1.0.0
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from restro.core.config import get_settings
from restro.core.errors import AuthError
from restro.models import UserRole

logger = logging.getLogger(__name__)

SESSION_SALT = "restro-session"


@dataclass(frozen=True)
class Principal:
    """An authenticated identity bound to at most one restaurant."""
    user_id: int
    email: str
    role: UserRole
    restaurant_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_claims(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "email": self.email,
            "role": self.role.value,
            "restaurantId": self.restaurant_id,
        }

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Principal":
        return cls(
            user_id=int(claims["userId"]),
            email=claims["email"],
            role=UserRole(claims["role"]),
            restaurant_id=claims.get("restaurantId"),
        )


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return check_password_hash(hashed, password)


# =============================================================================
# SESSION CREDENTIALS
# =============================================================================

class SessionSigner:
    """Issues and verifies opaque, signed, time-boxed session tokens."""

    def __init__(self, secret: Optional[str] = None, max_age: Optional[int] = None):
        settings = get_settings()
        self._serializer = URLSafeTimedSerializer(
            secret or settings.effective_session_secret,
            salt=SESSION_SALT,
        )
        self.max_age = max_age or settings.session_max_age_seconds

    def issue(self, principal: Principal) -> str:
        return self._serializer.dumps(principal.to_claims())

    def verify(self, token: str) -> Principal:
        try:
            claims = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            raise AuthError("Session expired")
        except BadSignature:
            raise AuthError("Invalid or expired token")

        try:
            return Principal.from_claims(claims)
        except (KeyError, ValueError, TypeError):
            raise AuthError("Invalid or expired token")


def extract_token(cookie_value: Optional[str], authorization: Optional[str]) -> Optional[str]:
    """Cookie first, then ``Authorization: Bearer``."""
    if cookie_value:
        return cookie_value
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


# =============================================================================
# PASSWORD RESET TOKENS
# =============================================================================

def generate_reset_token() -> tuple[str, str]:
    """Return ``(raw_token, hashed_token)``. Only the hash is stored."""
    raw = secrets.token_hex(32)
    return raw, hash_reset_token(raw)


def hash_reset_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def reset_token_matches(raw: str, stored_hash: Optional[str]) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_reset_token(raw), stored_hash)


# =============================================================================
# AUTHORIZATION
# =============================================================================

def require_role(principal: Optional[Principal], *roles: UserRole) -> Principal:
    """Raise unless the principal holds one of ``roles``."""
    if principal is None:
        raise AuthError("No authentication token provided")
    if principal.role not in roles:
        raise AuthError("Insufficient permissions", status_code=403)
    return principal


def require_restaurant_admin(principal: Optional[Principal], restaurant_id: str) -> Principal:
    """Admin of exactly this restaurant."""
    principal = require_role(principal, UserRole.ADMIN)
    if principal.restaurant_id != restaurant_id:
        logger.warning(
            f"User {principal.user_id} denied access to restaurant {restaurant_id} "
            f"(bound to {principal.restaurant_id})"
        )
        raise AuthError("Access denied. You do not own this restaurant.", status_code=403)
    return principal


def is_restaurant_member(principal: Optional[Principal], restaurant_id: str) -> bool:
    return (
        principal is not None
        and principal.role in (UserRole.ADMIN, UserRole.STAFF)
        and principal.restaurant_id == restaurant_id
    )


def require_restaurant_member(principal: Optional[Principal], restaurant_id: str) -> Principal:
    """Admin or staff of this restaurant."""
    principal = require_role(principal, UserRole.ADMIN, UserRole.STAFF)
    if not is_restaurant_member(principal, restaurant_id):
        raise AuthError("Access denied. You do not work at this restaurant.", status_code=403)
    return principal
