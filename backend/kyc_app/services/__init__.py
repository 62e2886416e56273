from kyc_app.services.field_cipher import FieldCipher, EncryptedField, CipherScheme
from kyc_app.services.repository import KYCRepository, InMemoryKYCRepository, SQLKYCRepository
from kyc_app.services.kyc_service import KYCService

__all__ = [
    "FieldCipher", "EncryptedField", "CipherScheme",
    "KYCRepository", "InMemoryKYCRepository", "SQLKYCRepository",
    "KYCService",
]
