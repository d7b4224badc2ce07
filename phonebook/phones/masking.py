"""Phone input masking: digits only, at most 10 characters."""

import re

PHONE_LENGTH = 10
PHONE_PATTERN = re.compile(r"[0-9]{10}")

_NON_DIGIT = re.compile(r"[^0-9]")


def mask_phone_input(raw: str | None) -> str:
    """Strip every non-digit character and silently truncate to 10."""
    if not raw:
        return ""
    return _NON_DIGIT.sub("", str(raw))[:PHONE_LENGTH]


def is_complete_phone(value: str) -> bool:
    return bool(PHONE_PATTERN.fullmatch(value or ""))
