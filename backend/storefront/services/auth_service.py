# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Accounts are identified by email. Passwords are hashed with bcrypt and must
pass the strength rule before hashing.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, is_valid_email


class PasswordValidationError(ValidationError):
    """Raised when a password doesn't meet strength requirements."""

    def __init__(self, message: str, field: str = "password"):
        super().__init__(message, errors=[{"field": field, "message": message}])


def validate_password_strength(password: str, field: str = "password") -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long", field)

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter", field)

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter", field)

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit", field)

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-+=\[\]\\/;~`]", password):
        raise PasswordValidationError("Password must contain at least one special character", field)


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt (cost factor BCRYPT_ROUNDS, default 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash. bcrypt.checkpw is timing-safe.

    A malformed stored hash counts as a mismatch.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user(name: str, email: str, password: str) -> User:
    """
    Create a customer account.

    Raises:
        ValidationError: missing name, malformed email, weak password
        ConflictError: email already registered
    """
    errors = []
    if not isinstance(name, str) or not name.strip():
        errors.append({"field": "name", "message": "Name is required"})
    if not is_valid_email(email):
        errors.append({"field": "email", "message": "Please enter a valid email address"})
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    email = normalize_email(email)

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("User with this email already exists")

    password_hash = hash_password(password)

    user = User(
        name=name.strip(),
        email=email,
        password_hash=password_hash,
    )

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("Registered user %s", user.id)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns User if credentials valid, None otherwise.
    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    user = db.session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
