"""
Authentication endpoints.

Successful register, login, reset and profile update all (re)issue the
session as an http-only cookie and echo the token for bearer clients.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from restro.api.deps import (
    clear_session_cookie,
    get_auth_service,
    get_principal,
    set_session_cookie,
)
from restro.core.config import get_settings
from restro.core.security import Principal
from restro.schemas import (
    AuthResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from restro.services.auth import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)


@router.post("/register", response_model=AuthResponse, summary="Register")
async def register(
    data: RegisterRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, token = await auth.register(data)
    set_session_cookie(response, token)
    return AuthResponse(
        message="Registration successful",
        user=UserResponse.model_validate(user),
        restaurant_id=user.restaurant_id,
        token=token,
    )


@router.post("/login", response_model=AuthResponse, summary="Log in")
async def login(
    data: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, token = await auth.login(data.email, data.password)
    set_session_cookie(response, token)
    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        restaurant_id=user.restaurant_id,
        token=token,
    )


@router.post("/logout", response_model=MessageResponse, summary="Log out")
async def logout(
    response: Response,
    principal: Principal = Depends(get_principal),
) -> MessageResponse:
    clear_session_cookie(response)
    logger.info(f"User #{principal.user_id} logged out")
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=AuthResponse, summary="Current principal")
async def me(
    principal: Principal = Depends(get_principal),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user = await auth.current_user(principal)
    return AuthResponse(
        message="Authenticated",
        user=UserResponse.model_validate(user),
        restaurant_id=user.restaurant_id,
    )


@router.post("/forgot-password", response_model=MessageResponse, summary="Request a reset link")
async def forgot_password(
    data: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    message = await auth.forgot_password(data.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password with a token")
async def reset_password(
    data: ResetPasswordRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    _, token = await auth.reset_password(data.token, data.password)
    set_session_cookie(response, token)
    return MessageResponse(message="Password has been reset successfully", token=token)


@router.put("/update-profile", response_model=AuthResponse, summary="Update profile")
async def update_profile(
    response: Response,
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_principal),
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    content, content_type = None, None
    if image is not None and image.filename:
        # One byte past the limit is enough to reject an oversized upload
        content = await image.read(get_settings().max_profile_image_bytes + 1)
        content_type = image.content_type

    user, token = await auth.update_profile(principal, name, email, phone, content, content_type)
    set_session_cookie(response, token)
    return AuthResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(user),
        restaurant_id=user.restaurant_id,
        token=token,
    )
