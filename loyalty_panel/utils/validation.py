"""
Field validators shared by onboarding, approval and the auth routes.

Each validator returns a ValidationResult instead of raising, so callers can
collect every problem in a form before reporting.
"""

import re
from dataclasses import dataclass

from loyalty_panel.utils.nip import NIP_WEIGHTS, clean_nip, nip_checksum


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


VALID = ValidationResult(True)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^(\+48)?[0-9]{9}$")
POSTAL_CODE_RE = re.compile(r"^\d{2}-\d{3}$")
PASSWORD_MIN_LENGTH = 8


def _blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


def validate_email(email: str | None) -> ValidationResult:
    if _blank(email):
        return ValidationResult(False, "Email is required")
    if not EMAIL_RE.match(email):
        return ValidationResult(False, "Invalid email format")
    return VALID


def validate_phone(phone: str | None) -> ValidationResult:
    """Polish numbers: 9 digits, optionally prefixed with +48. Spaces and dashes are ignored."""
    if _blank(phone):
        return ValidationResult(False, "Phone number is required")
    if not PHONE_RE.match(re.sub(r"[\s-]", "", phone)):
        return ValidationResult(False, "Invalid phone number (9 digits required)")
    return VALID


def validate_nip(nip: str | None) -> ValidationResult:
    if _blank(nip):
        return ValidationResult(False, "NIP is required")
    cleaned = clean_nip(nip)
    if len(cleaned) != 10 or not cleaned.isdigit():
        return ValidationResult(False, "NIP must consist of 10 digits")
    checksum = nip_checksum(cleaned)
    if checksum == 10 or checksum != int(cleaned[len(NIP_WEIGHTS)]):
        return ValidationResult(False, "Invalid NIP (checksum mismatch)")
    return VALID


def validate_postal_code(code: str | None) -> ValidationResult:
    if _blank(code):
        return ValidationResult(False, "Postal code is required")
    if not POSTAL_CODE_RE.match(code):
        return ValidationResult(False, "Invalid postal code format (XX-XXX)")
    return VALID


def validate_required(value: str | None, field_name: str) -> ValidationResult:
    if _blank(value):
        return ValidationResult(False, f"{field_name} is required")
    return VALID


def validate_length(value: str | None, min_length: int, max_length: int, field_name: str) -> ValidationResult:
    if not value:
        return ValidationResult(False, f"{field_name} is required")
    length = len(value.strip())
    if length < min_length:
        return ValidationResult(False, f"{field_name} must be at least {min_length} characters")
    if length > max_length:
        return ValidationResult(False, f"{field_name} must be at most {max_length} characters")
    return VALID


def validate_number(value: int | float | str | None, minimum: float, maximum: float, field_name: str) -> ValidationResult:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ValidationResult(False, f"{field_name} must be a number")
    if number != number:  # NaN
        return ValidationResult(False, f"{field_name} must be a number")
    if number < minimum:
        return ValidationResult(False, f"{field_name} must be greater than or equal to {minimum:g}")
    if number > maximum:
        return ValidationResult(False, f"{field_name} must be less than or equal to {maximum:g}")
    return VALID


def validate_password(password: str | None) -> ValidationResult:
    if _blank(password):
        return ValidationResult(False, "Password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        return ValidationResult(False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[a-zA-Z]", password) or not re.search(r"[0-9]", password):
        return ValidationResult(False, "Password must contain letters and digits")
    return VALID


def validate_password_confirmation(password: str | None, confirmation: str | None) -> ValidationResult:
    if _blank(confirmation):
        return ValidationResult(False, "Password confirmation is required")
    if password != confirmation:
        return ValidationResult(False, "Passwords do not match")
    return VALID
