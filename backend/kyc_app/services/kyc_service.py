"""
KYC Service — Builds, reads and mutates encrypted KYC records.

Every gate (presence, format, duplicate PAN) runs before the first cipher
call, so a rejected submission never produces ciphertext or a partial write.
"""
import logging
import secrets
import string
import time
from typing import Dict, List, Optional

from kyc_app.config import Settings, get_settings
from kyc_app.exceptions import ConflictError, NotFoundError, ValidationError
from kyc_app.models.kyc import KYCRecord, RISK_LEVELS, VERIFICATION_STATUSES, utcnow
from kyc_app.services.field_cipher import CipherScheme, FieldCipher
from kyc_app.services.repository import KYCRepository
from kyc_app.utils.hashing import hash_for_lookup
from kyc_app.utils.validators import (
    normalize_pan, validate_aadhaar, validate_date, validate_gov_id, validate_pan,
)

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("gov_id", "kyc_dob", "pan", "aadhaar_number")
MANDATORY_FIELDS = ("gov_id", "kyc_address", "kyc_dob", "pan")

# Plaintext columns and their length limits (None = unbounded Text)
PLAINTEXT_FIELDS = {
    "kyc_address": None,
    "gov_id_type": 50,
    "city": 100,
    "state": 100,
    "postal_code": 20,
    "country": 100,
    "nationality": 100,
    "occupation": 100,
}

# Checked in this order; the first failure wins
FORMAT_CHECKS = (
    ("gov_id", validate_gov_id, "Invalid Government ID format (5-20 alphanumeric characters)"),
    ("pan", validate_pan, "Invalid PAN format (10 alphanumeric characters)"),
    ("aadhaar_number", validate_aadhaar, "Invalid Aadhaar number (12 digits)"),
    ("kyc_dob", validate_date, "Invalid date of birth"),
)

# Front-end form keys → column names
FIELD_ALIASES = {
    "govID": "gov_id",
    "govId": "gov_id",
    "govIdType": "gov_id_type",
    "kycAddress": "kyc_address",
    "kycDob": "kyc_dob",
    "aadhaarNumber": "aadhaar_number",
    "customerId": "customer_id",
    "postalCode": "postal_code",
    "politicallyExposedPerson": "politically_exposed_person",
    "submissionSource": "submission_source",
}

UPDATABLE_FIELDS = set(SENSITIVE_FIELDS) | set(PLAINTEXT_FIELDS) | {"politically_exposed_person"}

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_kyc_id() -> str:
    """KYC-<epoch ms>-<9 random base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"KYC-{int(time.time() * 1000)}-{suffix}"


def normalize_fields(raw: Dict) -> Dict:
    """Map camelCase form keys onto column names; snake_case keys pass through."""
    return {FIELD_ALIASES.get(key, key): value for key, value in raw.items()}


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _clip(value, limit: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text[:limit] if limit else text


_FLAG_WORDS = {"true": True, "yes": True, "1": True, "false": False, "no": False, "0": False}


def _plaintext(field: str, value, limit: Optional[int]) -> Optional[str]:
    """Column value kept exactly as given; over-long values are rejected, not cut."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    if limit and len(text) > limit:
        raise ValidationError.invalid(field, f"{field} must be at most {limit} characters")
    return text


def _parse_flag(field: str, value) -> bool:
    """Accept real booleans and the usual form spellings; anything else is invalid."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _FLAG_WORDS:
        return _FLAG_WORDS[value.strip().lower()]
    raise ValidationError.invalid(field, f"{field} must be true or false")


def _canonical(field: str, value: str) -> str:
    """Form stored under encryption once the value has passed its format check."""
    if field == "pan":
        return normalize_pan(value)
    if field in ("aadhaar_number", "kyc_dob"):
        return value.strip()
    return value


class KYCService:
    """Record codec over an injected repository and field cipher."""

    def __init__(
        self,
        repository: KYCRepository,
        cipher: FieldCipher,
        require_aadhaar: bool = False,
        recheck_pan_on_update: bool = True,
        release_pan_on_delete: bool = True,
    ):
        self.repository = repository
        self.cipher = cipher
        self.require_aadhaar = require_aadhaar
        self.recheck_pan_on_update = recheck_pan_on_update
        self.release_pan_on_delete = release_pan_on_delete

    @classmethod
    def from_settings(cls, repository: KYCRepository, settings: Optional[Settings] = None) -> "KYCService":
        settings = settings or get_settings()
        return cls(
            repository,
            FieldCipher(settings.ENCRYPTION_KEY),
            require_aadhaar=settings.REQUIRE_AADHAAR,
            recheck_pan_on_update=settings.RECHECK_PAN_ON_UPDATE,
            release_pan_on_delete=settings.RELEASE_PAN_ON_DELETE,
        )

    # ─── Validation ─────────────────────────────────────────────────

    @property
    def mandatory_fields(self) -> tuple:
        if self.require_aadhaar:
            return MANDATORY_FIELDS + ("aadhaar_number",)
        return MANDATORY_FIELDS

    def _check_formats(self, fields: Dict) -> None:
        for field, validator, reason in FORMAT_CHECKS:
            if field not in fields:
                continue
            if not validator(fields[field]):
                raise ValidationError.invalid(field, reason)

    # ─── Encryption ─────────────────────────────────────────────────

    def _encrypt_fields(self, fields: Dict) -> tuple[Dict, List[str]]:
        """Encrypt each present sensitive field under its own IV.

        Returns the column values and the names of fields that fell back to base64.
        """
        encrypted, degraded = {}, []
        for field in SENSITIVE_FIELDS:
            if field not in fields:
                continue
            result = self.cipher.encrypt(_canonical(field, fields[field]))
            encrypted[field] = result.token
            if result.scheme is CipherScheme.BASE64_FALLBACK:
                degraded.append(field)
        if degraded:
            logger.warning("KYC fields stored under fallback encoding: %s", ", ".join(degraded))
        return encrypted, degraded

    @staticmethod
    def _encryption_metadata(degraded: List[str]) -> Dict:
        scheme = CipherScheme.BASE64_FALLBACK if degraded else CipherScheme.AES_256_CBC
        return {"encryption_version": scheme.value, "degraded_fields": sorted(degraded)}

    # ─── Create ─────────────────────────────────────────────────────

    def create_record(
        self,
        raw_fields: Dict,
        customer_id: Optional[str] = None,
        request_metadata: Optional[Dict] = None,
    ) -> KYCRecord:
        """Validate, fingerprint, encrypt and store a new submission.

        Raises:
            ValidationError: missing fields (all listed) or the first bad format.
            ConflictError: the PAN is already registered.
        """
        if not isinstance(raw_fields, dict):
            raise ValidationError("Invalid KYC data provided")

        fields = normalize_fields(raw_fields)

        missing = [name for name in self.mandatory_fields if _is_blank(fields.get(name))]
        if missing:
            raise ValidationError.missing(missing)

        # An empty optional Aadhaar is treated as absent
        if _is_blank(fields.get("aadhaar_number")):
            fields.pop("aadhaar_number", None)

        self._check_formats(fields)
        columns = {name: _plaintext(name, fields.get(name), limit) for name, limit in PLAINTEXT_FIELDS.items()}
        pep = _parse_flag("politically_exposed_person", fields.get("politically_exposed_person", False))

        fingerprint = hash_for_lookup(normalize_pan(fields["pan"]))
        if self.repository.fingerprint_exists(fingerprint):
            logger.info("Duplicate PAN rejected (fingerprint %s…)", fingerprint[:12])
            raise ConflictError()

        encrypted, degraded = self._encrypt_fields(fields)

        columns["aadhaar_number"] = None
        columns.update(encrypted)

        req = request_metadata or {}
        now = utcnow()
        record = KYCRecord(
            id=generate_kyc_id(),
            customer_id=_clip(customer_id or fields.get("customer_id"), 64),
            politically_exposed_person=pep,
            verification_status="pending",
            submission_source=_clip(fields.get("submission_source") or "web-form", 50),
            created_at=now,
            updated_at=now,
            record_metadata={
                "submission_ip": req.get("ip"),
                "user_agent": (req.get("user_agent") or "")[:256] or None,
                **self._encryption_metadata(degraded),
            },
            **columns,
        )

        self.repository.add(record, fingerprint)
        logger.info("KYC record %s created (customer=%s)", record.id, record.customer_id)
        return record

    # ─── Read ───────────────────────────────────────────────────────

    def retrieve_record(self, record: Optional[KYCRecord]) -> Optional[Dict]:
        """Decrypted view of a record. A field that cannot be decrypted is None."""
        if record is None:
            return None

        view = {"id": record.id, "customer_id": record.customer_id}
        for field in SENSITIVE_FIELDS:
            token = getattr(record, field)
            view[field] = self.cipher.decrypt(token) if token else None
            if token and view[field] is None:
                logger.warning("Could not decrypt %s on KYC record %s", field, record.id)

        for field in PLAINTEXT_FIELDS:
            view[field] = getattr(record, field)

        metadata = record.record_metadata or {}
        view.update(
            politically_exposed_person=bool(record.politically_exposed_person),
            risk_assessment=record.risk_assessment,
            verification_status=record.verification_status,
            verification_notes=record.verification_notes,
            verified_by=record.verified_by,
            verified_at=record.verified_at,
            submission_source=record.submission_source,
            encryption_version=metadata.get("encryption_version"),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        return view

    def get_record(self, kyc_id: str) -> KYCRecord:
        record = self.repository.get(kyc_id)
        if record is None:
            raise NotFoundError(kyc_id)
        return record

    def records_for_customer(self, customer_id: str) -> List[KYCRecord]:
        return self.repository.for_customer(customer_id)

    def list_records(self, limit: int = 50, offset: int = 0, status: Optional[str] = None) -> List[Dict]:
        """Summary rows for dashboards; never includes sensitive fields."""
        return [
            {
                "id": r.id,
                "customer_id": r.customer_id,
                "verification_status": r.verification_status,
                "risk_assessment": r.risk_assessment,
                "encryption_version": (r.record_metadata or {}).get("encryption_version"),
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "updated_at": r.updated_at.isoformat() if r.updated_at else None,
            }
            for r in self.repository.list(limit=limit, offset=offset, status=status)
        ]

    def count_records(self, status: Optional[str] = None) -> int:
        return self.repository.count(status)

    def pan_exists(self, pan: str) -> bool:
        if not validate_pan(pan):
            return False
        return self.repository.fingerprint_exists(hash_for_lookup(normalize_pan(pan)))

    def stats(self) -> Dict:
        return {
            "total_records": self.repository.count(),
            "unique_pans": self.repository.fingerprint_count(),
            "by_status": {status: self.repository.count(status) for status in VERIFICATION_STATUSES},
        }

    # ─── Update ─────────────────────────────────────────────────────

    def update_record(self, record: KYCRecord, patch: Dict) -> KYCRecord:
        """Apply a patch, re-encrypting every sensitive field it touches.

        All patched values are validated before anything is encrypted or written.
        """
        if not isinstance(patch, dict):
            raise ValidationError("Invalid update data provided")

        fields = normalize_fields(patch)
        unknown = sorted(set(fields) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError.invalid(unknown[0], f"Field cannot be updated: {', '.join(unknown)}")

        if "kyc_address" in fields and _is_blank(fields["kyc_address"]):
            raise ValidationError.invalid("kyc_address", "Address cannot be empty")
        self._check_formats(fields)

        # Plaintext columns are copied verbatim; only length and flag type are checked
        plain_changes = {
            name: _plaintext(name, fields[name], limit)
            for name, limit in PLAINTEXT_FIELDS.items() if name in fields
        }
        if "politically_exposed_person" in fields:
            plain_changes["politically_exposed_person"] = _parse_flag(
                "politically_exposed_person", fields["politically_exposed_person"]
            )

        new_fingerprint = None
        if "pan" in fields and self.recheck_pan_on_update:
            fingerprint = hash_for_lookup(normalize_pan(fields["pan"]))
            if fingerprint != self.repository.fingerprint_for(record.id):
                if self.repository.fingerprint_exists(fingerprint):
                    raise ConflictError()
                new_fingerprint = fingerprint

        encrypted, degraded = self._encrypt_fields(fields)

        changes = dict(encrypted)
        changes.update(plain_changes)

        metadata = dict(record.record_metadata or {})
        still_degraded = set(metadata.get("degraded_fields", [])) - set(encrypted)
        metadata.update(self._encryption_metadata(sorted(still_degraded | set(degraded))))
        changes["record_metadata"] = metadata
        changes["updated_at"] = utcnow()

        self.repository.update(
            record, changes,
            new_fingerprint=new_fingerprint,
            release_old=self.release_pan_on_delete,
        )
        logger.info("KYC record %s updated (%s)", record.id, ", ".join(sorted(fields)) or "no fields")
        return record

    def set_verification_status(
        self,
        record: KYCRecord,
        status: str,
        notes: Optional[str] = None,
        verified_by: Optional[str] = None,
    ) -> KYCRecord:
        if status not in VERIFICATION_STATUSES:
            raise ValidationError.invalid(
                "verification_status",
                f"Invalid verification status. Must be one of: {', '.join(VERIFICATION_STATUSES)}",
            )

        now = utcnow()
        metadata = dict(record.record_metadata or {})
        metadata.update(last_verification_attempt=now.isoformat(), verification_notes=notes)

        changes = {
            "verification_status": status,
            "verification_notes": notes,
            "record_metadata": metadata,
            "updated_at": now,
        }
        if verified_by is not None:
            changes["verified_by"] = _clip(verified_by, 100)
        if status == "verified":
            changes["verified_at"] = now

        self.repository.update(record, changes)
        logger.info("KYC record %s marked %s", record.id, status)
        return record

    def update_risk_assessment(self, record: KYCRecord, level: str) -> KYCRecord:
        if level not in RISK_LEVELS:
            raise ValidationError.invalid(
                "risk_assessment", f"Invalid risk level. Must be one of: {', '.join(RISK_LEVELS)}"
            )
        self.repository.update(record, {"risk_assessment": level, "updated_at": utcnow()})
        return record

    # ─── Delete ─────────────────────────────────────────────────────

    def delete_record(self, record: KYCRecord) -> None:
        """Remove a record; its PAN is freed or stays reserved per RELEASE_PAN_ON_DELETE."""
        kyc_id = record.id
        self.repository.delete(record, release_fingerprint=self.release_pan_on_delete)
        logger.info(
            "KYC record %s deleted (PAN %s)",
            kyc_id, "released" if self.release_pan_on_delete else "kept reserved",
        )
