"""
Validators — Format checks for KYC identifiers, run before anything is encrypted.
"""
import re

from dateutil import parser as date_parser

GOV_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{5,20}$")
PAN_PATTERN = re.compile(r"^[A-Za-z0-9]{10}$")
AADHAAR_PATTERN = re.compile(r"^[0-9]{12}$")


def validate_gov_id(gov_id: str | None) -> bool:
    """Government ID: 5–20 alphanumeric characters."""
    if not gov_id or not isinstance(gov_id, str):
        return False
    return bool(GOV_ID_PATTERN.fullmatch(gov_id))


def validate_pan(pan: str | None) -> bool:
    """PAN: exactly 10 alphanumeric characters, any case (e.g. ABCD1234EF)."""
    if not pan or not isinstance(pan, str):
        return False
    return bool(PAN_PATTERN.fullmatch(pan))


def validate_aadhaar(aadhaar: str | None) -> bool:
    """Aadhaar number: exactly 12 digits once surrounding whitespace is trimmed."""
    if not aadhaar or not isinstance(aadhaar, str):
        return False
    return bool(AADHAAR_PATTERN.fullmatch(aadhaar.strip()))


def validate_date(value: str | None) -> bool:
    """Any string the permissive date parser accepts (1990-01-15, 15/06/1990, Jan 15 1990...)."""
    if not value or not isinstance(value, str) or not value.strip():
        return False
    try:
        date_parser.parse(value)
    except (ValueError, OverflowError):
        return False
    return True


def normalize_pan(pan: str) -> str:
    return pan.strip().upper()
