"""
Authentication Service

Registration, login, session resolution, password reset and profile
updates. Sessions are signed tokens (see ``restro.core.security``); this
service only decides who gets one.

Author: Khalil Bannouri
Version: 1.0.0
"""

import base64
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from restro.core.config import get_settings
from restro.core.errors import AuthError, ConflictError, ValidationError
from restro.core.security import (
    Principal,
    SessionSigner,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    reset_token_matches,
    verify_password,
)
from restro.models import User, UserRole
from restro.repositories import RestaurantRepository, UserRepository
from restro.schemas import RegisterRequest, check_email, check_phone
from restro.services.notifications import BaseNotificationService, get_notification_service
from restro.services.orders import default_id_generator

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."

TENANT_ROLES = (UserRole.ADMIN, UserRole.STAFF)


def principal_for(user: User) -> Principal:
    return Principal(
        user_id=user.id,
        email=user.email,
        role=user.role,
        restaurant_id=user.restaurant_id,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:

    def __init__(
        self,
        session: AsyncSession,
        signer: Optional[SessionSigner] = None,
        notifier: Optional[BaseNotificationService] = None,
        timeout: Optional[float] = None,
    ):
        self.settings = get_settings()
        self.users = UserRepository(session, timeout)
        self.restaurants = RestaurantRepository(session, timeout)
        self.signer = signer or SessionSigner()
        self.notifier = notifier

    def issue(self, user: User) -> str:
        return self.signer.issue(principal_for(user))

    # =========================================================================
    # REGISTER / LOGIN
    # =========================================================================

    async def register(self, data: RegisterRequest) -> tuple[User, str]:
        """
        Create a principal and sign them in.

        An admin registering without a restaurant id gets a new restaurant
        built from ``restaurant_name`` and ``address``.
        """
        if await self.users.email_taken(data.email):
            raise ConflictError("User with this email already exists")

        restaurant_id = data.restaurant_id

        if data.role == UserRole.ADMIN and not restaurant_id:
            errors = []
            if not data.restaurant_name:
                errors.append({"field": "restaurantName", "message": "Restaurant name is required for admin registration"})
            if not data.address:
                errors.append({"field": "address", "message": "Address is required for admin registration"})
            if errors:
                raise ValidationError(errors)

            restaurant = await self.restaurants.create(
                id=f"rest-{default_id_generator.next_millis()}",
                name=data.restaurant_name.strip(),
                description=f"Restaurant created by {data.name}",
                address=data.address.strip(),
                phone=data.phone,
                email=data.email,
                is_active=True,
            )
            restaurant_id = restaurant.id
            logger.info(f"Restaurant {restaurant_id} created for new admin {data.email}")

        if data.role in TENANT_ROLES:
            if not restaurant_id:
                raise ValidationError.single("restaurantId", "Restaurant ID is required for admin/staff roles")
            restaurant = await self.restaurants.get_or_404(restaurant_id)
            if not restaurant.is_active:
                raise ValidationError.single("restaurantId", "Restaurant is not active")
        else:
            restaurant_id = None

        user = await self.users.create(
            name=data.name.strip(),
            email=data.email,
            phone=data.phone,
            hashed_password=hash_password(data.password),
            role=data.role,
            restaurant_id=restaurant_id,
        )
        logger.info(f"User #{user.id} registered ({user.role.value})")
        return user, self.issue(user)

    async def login(self, email: str, password: str) -> tuple[User, str]:
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info(f"Failed login for {email.lower()}")
            raise AuthError("Invalid credentials")

        if user.role in TENANT_ROLES and not user.restaurant_id:
            raise AuthError("No restaurant associated with this account", status_code=403)

        logger.info(f"User #{user.id} logged in")
        return user, self.issue(user)

    def authenticate(self, token: Optional[str]) -> Principal:
        if not token:
            raise AuthError("No authentication token provided")
        return self.signer.verify(token)

    async def current_user(self, principal: Principal) -> User:
        user = await self.users.get(principal.user_id)
        if user is None:
            raise AuthError("User not found")
        return user

    # =========================================================================
    # PASSWORD RESET
    # =========================================================================

    async def forgot_password(self, email: str) -> str:
        """
        Start a password reset. The reply is the same whether or not the
        account exists, and a failed email never fails the request.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return FORGOT_PASSWORD_MESSAGE

        raw_token, hashed_token = generate_reset_token()
        ttl = self.settings.reset_token_ttl_minutes
        await self.users.update(user, {
            "reset_token": hashed_token,
            "reset_token_expiry": datetime.now(timezone.utc) + timedelta(minutes=ttl),
        })

        reset_url = f"{self.settings.public_base_url}/reset-password?token={raw_token}"
        notifier = self.notifier or get_notification_service()
        try:
            result = await notifier.send_password_reset(user.email, user.name, reset_url, ttl)
            if not result.success:
                logger.error(f"Password reset email to user #{user.id} failed: {result.error_message}")
        except Exception as e:
            logger.error(f"Password reset email to user #{user.id} failed: {e}")

        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, raw_token: str, password: str) -> tuple[User, str]:
        """Consume a reset token. Tokens are single use and expire."""
        user = await self.users.get_by_reset_token(hash_reset_token(raw_token))

        valid = (
            user is not None
            and reset_token_matches(raw_token, user.reset_token)
            and user.reset_token_expiry is not None
            and _as_utc(user.reset_token_expiry) > datetime.now(timezone.utc)
        )
        if not valid:
            raise ValidationError.single("token", "Invalid or expired reset token")

        user = await self.users.update(user, {
            "hashed_password": hash_password(password),
            "reset_token": None,
            "reset_token_expiry": None,
        })
        logger.info(f"Password reset for user #{user.id}")
        return user, self.issue(user)

    # =========================================================================
    # PROFILE
    # =========================================================================

    async def update_profile(
        self,
        principal: Principal,
        name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        image: Optional[bytes] = None,
        image_content_type: Optional[str] = None,
    ) -> tuple[User, str]:
        """
        Update name, email, phone and optionally the profile image, stored
        as a data URL. Returns the user and a fresh session token, since the
        token carries the email.
        """
        errors = []
        for field, value in (("name", name), ("email", email), ("phone", phone)):
            if not value or not value.strip():
                errors.append({"field": field, "message": f"{field.capitalize()} is required"})
        if errors:
            raise ValidationError(errors, message="Name, email, and phone are required")

        try:
            email = check_email(email.strip())
        except ValueError as e:
            errors.append({"field": "email", "message": str(e)})
        try:
            phone = check_phone(phone.strip())
        except ValueError as e:
            errors.append({"field": "phone", "message": str(e)})

        changes = {"name": name.strip(), "email": email, "phone": phone}

        if image:
            content_type = image_content_type or ""
            if len(image) > self.settings.max_profile_image_bytes:
                limit_mb = self.settings.max_profile_image_bytes // (1024 * 1024)
                errors.append({"field": "image", "message": f"Image file too large. Maximum size is {limit_mb}MB."})
            elif not content_type.startswith("image/"):
                errors.append({"field": "image", "message": "Invalid file type. Only images are allowed."})
            else:
                changes["image"] = f"data:{content_type};base64,{base64.b64encode(image).decode('ascii')}"

        if errors:
            raise ValidationError(errors)

        user = await self.current_user(principal)
        if await self.users.email_taken(email, exclude_user_id=user.id):
            raise ConflictError("Email is already in use")

        user = await self.users.update(user, changes)
        logger.info(f"Profile updated for user #{user.id}")
        return user, self.issue(user)
