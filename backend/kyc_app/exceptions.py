"""
KYC Errors — Exception taxonomy shared by the service and HTTP layers.
"""
from typing import Optional, Sequence


class KYCError(Exception):
    """Base class for all KYC service errors."""


class ValidationError(KYCError):
    """Caller-supplied input failed a presence or format check.

    Either ``missing_fields`` lists every absent mandatory field, or
    ``field`` names the first field that failed its format check.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        missing_fields: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.missing_fields = list(missing_fields or [])

    @classmethod
    def missing(cls, fields: Sequence[str]) -> "ValidationError":
        return cls(f"Missing required fields: {', '.join(fields)}", missing_fields=fields)

    @classmethod
    def invalid(cls, field: str, reason: str) -> "ValidationError":
        return cls(reason, field=field)


class ConflictError(KYCError):
    """PAN fingerprint already registered."""

    def __init__(self, message: str = "PAN already exists in the system."):
        super().__init__(message)
        self.message = message


class NotFoundError(KYCError):
    def __init__(self, kyc_id: str):
        self.kyc_id = kyc_id
        self.message = "KYC record not found."
        super().__init__(f"{self.message} ({kyc_id})")


class PersistenceError(KYCError):
    """Storage failure other than a uniqueness violation."""


class ConfigurationError(KYCError):
    pass


class CipherDegradedWarning(UserWarning):
    """Encryption fell back to the reversible base64 encoding."""
