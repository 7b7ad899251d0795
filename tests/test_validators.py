import pytest

from app.utils.validators import (
    normalize_phone,
    sanitize_text,
    split_name,
    to_international,
    validate_phone_number,
)


@pytest.mark.parametrize(
    "raw",
    ["7993724192", "917993724192", "+917993724192", "+91 79937-24192", "07993724192", "whatsapp:+917993724192"],
)
def test_phone_variants_share_one_canonical_form(raw):
    assert normalize_phone(raw) == "7993724192"


def test_normalize_phone_empty_values():
    assert normalize_phone(None) is None
    assert normalize_phone("") is None
    assert normalize_phone("n/a") is None


def test_to_international_prefixes_country_code():
    assert to_international("917993724192") == "+917993724192"
    assert to_international("7993724192", country_code="1") == "+17993724192"
    assert to_international("") is None


def test_validate_phone_number():
    assert validate_phone_number("+91 79937 24192")
    assert not validate_phone_number("12345")


def test_sanitize_text_collapses_whitespace():
    assert sanitize_text("  parent   is\ttravelling \n") == "parent is travelling"
    assert sanitize_text("x" * 20, max_length=5) == "xxxxx"


def test_split_name():
    assert split_name("Asha Rani Verma") == ("Asha", "Rani Verma")
    assert split_name("Aarav") == ("Aarav", "")
    assert split_name("   ") == ("", "")
