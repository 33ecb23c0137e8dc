from __future__ import annotations

import re
from typing import Optional

from ..core.constants import PHONE_DIGITS
from ..core.exceptions import Violation

_PHONE_RE = re.compile(rf"^[0-9]{{{PHONE_DIGITS}}}$")
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+$")


def check_length(
    value: Optional[str],
    field_name: str,
    *,
    min_len: int = 0,
    max_len: int,
    code: str = "invalid_field",
    label: Optional[str] = None,
) -> Optional[Violation]:
    """Return a violation when the stripped value is outside [min_len, max_len]."""
    label = label or field_name
    v = (value or "").strip()
    if min_len and len(v) < min_len:
        if min_len == 1:
            return Violation(field_name, code, f"{label} is required")
        return Violation(field_name, code, f"{label} must be between {min_len} and {max_len} characters")
    if len(v) > max_len:
        return Violation(field_name, code, f"{label} cannot exceed {max_len} characters")
    return None


def is_phone(value: Optional[str]) -> bool:
    return bool(value) and bool(_PHONE_RE.match(value.strip()))


def check_phone(value: Optional[str], field_name: str, *, code: str = "invalid_field", label: str = "Phone number") -> Optional[Violation]:
    if not is_phone(value):
        return Violation(field_name, code, f"{label} must be {PHONE_DIGITS} digits")
    return None


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def email_in_domain(email: str, domain: str) -> bool:
    email = normalize_email(email)
    return bool(_EMAIL_RE.match(email)) and email.endswith("@" + domain.lower().lstrip("@"))
