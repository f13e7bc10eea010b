"""
Form validation rules shared by the signup/login serializers.

Each validator returns None when the value is fine, or a user-facing
message describing the problem.
"""
import re

from django.utils.translation import gettext as _

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
MIN_PASSWORD_LENGTH = 8
MIN_NAME_LENGTH = 3


def validate_email(value):
    if not value or not value.strip():
        return _('Email is required')
    if not EMAIL_RE.match(value.strip()):
        return _('Invalid email address')
    return None


def validate_password(value):
    if not value:
        return _('Password is required')
    if len(value) < MIN_PASSWORD_LENGTH:
        return _('Password must be at least %(count)d characters') % {'count': MIN_PASSWORD_LENGTH}
    return None


def validate_name(value):
    if not value or not value.strip():
        return _('Name is required')
    if len(value.strip()) < MIN_NAME_LENGTH:
        return _('Name must be at least %(count)d characters') % {'count': MIN_NAME_LENGTH}
    return None


def validate_password_match(password, confirm):
    if password != confirm:
        return _('Passwords do not match')
    return None


def validate_signup(data):
    """Validate a signup payload, returning a field -> message dict"""
    errors = {}
    for field, message in (
        ('full_name', validate_name(data.get('full_name', ''))),
        ('email', validate_email(data.get('email', ''))),
        ('password', validate_password(data.get('password', ''))),
        ('password_confirm', validate_password_match(data.get('password', ''), data.get('password_confirm', ''))),
    ):
        if message:
            errors[field] = message
    return errors


def validate_login(data):
    errors = {}
    email_error = validate_email(data.get('email', ''))
    if email_error:
        errors['email'] = email_error
    if not data.get('password'):
        errors['password'] = _('Password is required')
    return errors
