from kyc_app.utils.hashing import hash_for_lookup
from kyc_app.utils.validators import (
    validate_gov_id, validate_pan, validate_aadhaar, validate_date, normalize_pan,
)

__all__ = [
    "hash_for_lookup",
    "validate_gov_id", "validate_pan", "validate_aadhaar", "validate_date", "normalize_pan",
]
