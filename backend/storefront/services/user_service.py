# Overview: Service-layer operations for the user's own profile.

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import User
from ..validation import (
    AuthenticationError,
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    is_valid_email,
    validate_payload,
)
from . import auth_service


USER_PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "profile_img"},
    required_on_create={"name", "email"},
)


def _require_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_profile(user_id: int) -> dict:
    user = _require_user(user_id)
    return {
        "name": user.name,
        "email": user.email,
        "profile_img": user.profile_img,
    }


def update_profile(user_id: int, payload: Any) -> User:
    """
    Partial update of name / email / profile_img, plus optional password change.

    A password change needs the current password as oldPassword.

    Raises:
        ValidationError: bad field, invalid email, password without oldPassword
        AuthenticationError: oldPassword does not match
        ConflictError: email taken by another account
    """
    user = _require_user(user_id)
    patch = validate_payload(model=User, payload=payload, policy=USER_PROFILE_POLICY, partial=True)

    if "email" in patch:
        if not is_valid_email(patch["email"]):
            raise ValidationError(
                "Invalid email format",
                errors=[{"field": "email", "message": "Please enter a valid email address"}],
            )
        patch["email"] = auth_service.normalize_email(patch["email"])
        taken = (
            db.session.query(User.id)
            .filter(User.email == patch["email"], User.id != user.id)
            .first()
        )
        if taken:
            raise ConflictError("Email already in use")

    new_password = payload.get("password")
    if new_password:
        old_password = payload.get("oldPassword")
        if not old_password:
            raise ValidationError(
                "Old password is required to set a new password",
                errors=[{"field": "oldPassword", "message": "Old password is required"}],
            )
        if not auth_service.verify_password(old_password, user.password_hash):
            raise AuthenticationError("Old password is incorrect")
        user.password_hash = auth_service.hash_password(new_password)

    for key, value in patch.items():
        setattr(user, key, value)

    db.session.commit()
    return user
