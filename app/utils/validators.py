# app/utils/validators.py

import re
from typing import Optional

NON_DIGIT_PATTERN = re.compile(r'\D')

CANONICAL_PHONE_LENGTH = 10


def extract_digits(text: str) -> str:
    """Extract only digits from text"""
    return NON_DIGIT_PATTERN.sub('', text)


def normalize_phone(phone) -> Optional[str]:
    """
    Canonical storage/lookup key for a phone number: its trailing 10 digits.

    "+91 79937-24192", "917993724192" and "07993724192" all map to "7993724192".
    Applied on every write and every lookup.
    """
    if phone is None:
        return None
    digits = extract_digits(str(phone))
    if not digits:
        return None
    return digits[-CANONICAL_PHONE_LENGTH:]


def to_international(phone: str, country_code: str = "91") -> Optional[str]:
    """E.164 form for outbound messages, e.g. "7993724192" -> "+917993724192"."""
    canonical = normalize_phone(phone)
    if not canonical:
        return None
    return f"+{country_code}{canonical}"


def validate_phone_number(phone: str) -> bool:
    canonical = normalize_phone(phone)
    return canonical is not None and len(canonical) == CANONICAL_PHONE_LENGTH


def sanitize_text(text: str, max_length: int = 1000) -> str:
    """Collapse whitespace and trim user supplied text"""
    cleaned = ' '.join(text.split())
    return cleaned[:max_length].strip()


def split_name(full_name: str):
    """"Asha Rani Verma" -> ("Asha", "Rani Verma")"""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
