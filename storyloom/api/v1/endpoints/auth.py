"""Authentication endpoints."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storyloom.api.deps import get_current_user, get_db, limit_auth_attempts
from storyloom.core.exceptions import AuthenticationError, ValidationError
from storyloom.models.user import User
from storyloom.schemas.auth import (
    PasswordChange,
    ProfileUpdate,
    UserLogin,
    UserRegister,
    UserResponse,
)
from storyloom.schemas.common import envelope
from storyloom.services.auth import AuthService
from storyloom.utils.validation import (
    require_valid,
    validate_email,
    validate_name,
    validate_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_json(user: User) -> dict:
    return UserResponse.model_validate(user).to_json()


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(limit_auth_attempts)],
)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    """Register a new user and sign them in."""
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required")
    require_valid(validate_email(payload.email), "Please provide a valid email address")
    require_valid(validate_password(payload.password), "Password requirements not met")

    name_errors = (
        validate_name(payload.first_name, "First name").errors
        + validate_name(payload.last_name, "Last name").errors
    )
    if name_errors:
        raise ValidationError("Invalid name", errors=name_errors)

    user = AuthService.create_user(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    token = AuthService.create_access_token(user)
    return envelope(
        {"user": _user_json(user), "token": token},
        message="User registered successfully",
    )


@router.post("/login", dependencies=[Depends(limit_auth_attempts)])
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login user and return access token."""
    if not credentials.email or not credentials.password:
        raise ValidationError("Email and password are required")

    user = AuthService.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise AuthenticationError("Invalid email or password")

    logger.info("User logged in: %s", user.id)
    return envelope(
        {"user": _user_json(user), "token": AuthService.create_access_token(user)},
        message="Login successful",
    )


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return envelope({"user": _user_json(current_user)})


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    fields = payload.model_dump(exclude_unset=True)
    errors = []
    if "first_name" in fields:
        errors += validate_name(fields["first_name"], "First name").errors
    if "last_name" in fields:
        errors += validate_name(fields["last_name"], "Last name").errors
    if errors:
        raise ValidationError("Invalid name", errors=errors)

    for name, value in fields.items():
        setattr(current_user, name, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(current_user)
    return envelope({"user": _user_json(current_user)}, message="Profile updated successfully")


@router.post("/change-password")
def change_password(
    payload: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not payload.current_password or not payload.new_password:
        raise ValidationError("Current password and new password are required")
    if not AuthService.verify_password(payload.current_password, current_user.hashed_password):
        raise AuthenticationError("Current password is incorrect")
    require_valid(validate_password(payload.new_password), "New password requirements not met")

    AuthService.change_password(db, current_user, payload.new_password)
    return envelope(message="Password changed successfully")


@router.post("/refresh-token")
def refresh_token(current_user: User = Depends(get_current_user)):
    return envelope(
        {"token": AuthService.create_access_token(current_user)},
        message="Token refreshed successfully",
    )
