"""
Account helpers shared by registration, profile editing and the staff
roster: uniqueness checks, password validation and the public user shape.
"""
from __future__ import annotations

from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import ValidationError

from clinic.exceptions import Conflict
from clinic.models import User


def serialize_user(u: User) -> dict:
    """Public representation of an account.  Never includes the password hash."""
    return {
        'id': u.pk,
        'username': u.username,
        'full_name': u.full_name,
        'email': u.email,
        'phone': u.phone,
        'role': u.role,
        'hospital_id': u.hospital_id,
        'department': u.department,
        'is_active': u.is_active,
        'date_joined': u.date_joined.isoformat() if u.date_joined else None,
    }


def normalize_username(username: Optional[str], email: Optional[str]) -> str:
    return (username or email or '').strip().lower()


def ensure_unique(*, email=None, phone=None, username=None, exclude: Optional[User] = None) -> None:
    """Raise :class:`Conflict` when another account already holds a credential."""
    checks = (
        ('email', (email or '').strip().lower(), 'Email already registered'),
        ('phone', (phone or '').strip(), 'Phone already registered'),
        ('username', (username or '').strip().lower(), 'Username already taken'),
    )
    for field, value, message in checks:
        if not value:
            continue
        qs = User.objects.filter(**{field: value})
        if exclude is not None:
            qs = qs.exclude(pk=exclude.pk)
        if qs.exists():
            raise Conflict(message)


def check_password_strength(password: str, user: Optional[User] = None) -> None:
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationError({'password': e.messages})


def create_account(*, password: str, role: str, full_name: str = '', email=None, phone=None,
                   username=None, hospital=None, department: str = '') -> User:
    username = normalize_username(username, email)
    ensure_unique(email=email, phone=phone, username=username)
    check_password_strength(password)
    # savepoint so a racing duplicate surfaces as IntegrityError -> 409
    with transaction.atomic():
        return User.objects.create_user(
            username=username, email=email or None, password=password,
            full_name=full_name, phone=phone or None, role=role,
            hospital=hospital, department=department or '',
        )
