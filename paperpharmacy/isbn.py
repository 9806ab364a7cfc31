"""ISBN-13 cleanup and validation."""
import re
from typing import Optional

_NON_DIGITS = re.compile(r"[^0-9]")
_ISBN13 = re.compile(r"^\d{13}$")


def clean_isbn(raw: Optional[str]) -> str:
    """Strip hyphens, spaces and anything else that is not a digit."""
    if not raw:
        return ""
    return _NON_DIGITS.sub("", str(raw))


def validate_isbn(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a candidate ISBN.

    Args:
        raw: Anything that might be an ISBN ("978-89-...", None, "")

    Returns:
        The 13-digit string, or None when it does not reduce to exactly 13 digits
    """
    cleaned = clean_isbn(raw)
    if _ISBN13.match(cleaned):
        return cleaned
    return None
