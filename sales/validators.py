import re
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _


# CI-ABJ-2024-A-12345
_NCC_RE = re.compile(r"^CI-[A-Z]{3}-\d{4}-[A-Z]-\d{5}$")
_PHONE_INTL_RE = re.compile(r"^\+225\d{10}$")
_PHONE_LOCAL_RE = re.compile(r"^0\d{9}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_ncc(value: str) -> bool:
    return bool(value) and bool(_NCC_RE.match(value.strip()))


def is_valid_phone(value: str) -> bool:
    if not value:
        return False
    clean = re.sub(r"\s", "", value)
    return bool(_PHONE_INTL_RE.match(clean) or _PHONE_LOCAL_RE.match(clean))


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(_EMAIL_RE.match(value.strip()))


def validate_ncc(value: str):
    if value and not is_valid_ncc(value):
        raise ValidationError(_("Format NCC invalide. Format attendu : CI-XXX-YYYY-X-NNNNN"))


def validate_phone_ci(value: str):
    if value and not is_valid_phone(value):
        raise ValidationError(_("Format de téléphone invalide"))
