"""
KYC Record Model — Encrypted identity data and the PAN fingerprint index.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Boolean, Text

from kyc_app.database import Base


VERIFICATION_STATUSES = ("pending", "verified", "rejected", "expired")
RISK_LEVELS = ("low", "medium", "high")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KYCRecord(Base):
    __tablename__ = "kyc_records"

    id = Column(String(40), primary_key=True, index=True)   # KYC-<epoch ms>-<suffix>
    customer_id = Column(String(64), index=True)

    # Sensitive Fields (iv_hex:ciphertext_hex, or base64 under the fallback)
    gov_id = Column(String(500), nullable=False)
    kyc_dob = Column(String(255), nullable=False)
    pan = Column(String(255), nullable=False)
    aadhaar_number = Column(String(255), nullable=True)

    # Plaintext Fields
    gov_id_type = Column(String(50))
    kyc_address = Column(Text, nullable=False)
    city = Column(String(100))
    state = Column(String(100))
    postal_code = Column(String(20))
    country = Column(String(100))
    nationality = Column(String(100))
    occupation = Column(String(100))
    politically_exposed_person = Column(Boolean, default=False)
    risk_assessment = Column(String(16))     # low | medium | high

    # Verification
    verification_status = Column(String(16), default="pending", index=True)
    # Statuses: pending → verified | rejected | expired
    verification_notes = Column(Text)
    verified_by = Column(String(100))
    verified_at = Column(DateTime(timezone=True), nullable=True)

    submission_source = Column(String(50), default="web-form")
    record_metadata = Column(JSON, default=dict)   # submission_ip, user_agent, encryption_version, ...

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow)


class PanFingerprint(Base):
    """
    SHA-256 of the normalised PAN → owning record.
    The primary key is the uniqueness guarantee for duplicate detection;
    kyc_id is NULL when the PAN stays reserved after its record is deleted.
    """
    __tablename__ = "pan_fingerprints"

    fingerprint = Column(String(64), primary_key=True)
    kyc_id = Column(String(40), ForeignKey("kyc_records.id"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
