from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"\D")
_WHITESPACE = re.compile(r"\s+")

SIGNIFICANT_PHONE_DIGITS = 9

# Cyrillic letters that look like Latin ones, as typed on a mixed keyboard layout.
_CYRILLIC_LOOKALIKES = str.maketrans("аеорсухкмнвт", "aeopcyxkmhbt")


def normalize_name(value: str | None) -> str:
    folded = (value or "").strip().lower().translate(_CYRILLIC_LOOKALIKES)
    return _WHITESPACE.sub(" ", folded)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def phone_digits(value: str | None) -> str:
    return _NON_DIGITS.sub("", value or "")


def phones_match(left: str | None, right: str | None) -> bool:
    """Compare the trailing local part so "+48 600 100 200" equals "600100200"."""
    a, b = phone_digits(left), phone_digits(right)
    if len(a) < SIGNIFICANT_PHONE_DIGITS or len(b) < SIGNIFICANT_PHONE_DIGITS:
        return False
    return a[-SIGNIFICANT_PHONE_DIGITS:] == b[-SIGNIFICANT_PHONE_DIGITS:]


def mask_phone(value: str | None) -> str:
    digits = phone_digits(value)
    if len(digits) < 4:
        return "***"
    return f"{digits[:2]}***{digits[-2:]}"


def mask_email(value: str | None) -> str:
    if not value:
        return "not-provided"
    local, _, domain = value.partition("@")
    if not domain:
        return "invalid-email"
    masked = f"{local[0]}***{local[-1]}" if len(local) > 2 else "***"
    return f"{masked}@{domain}"
