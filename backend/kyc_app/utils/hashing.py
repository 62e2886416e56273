"""
Cryptographic Hashing Utilities — SHA-256 fingerprints for duplicate lookup.
"""
import hashlib


def hash_for_lookup(value: str) -> str:
    """One-way SHA-256 hex digest of a plaintext value. No key, no IV."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
