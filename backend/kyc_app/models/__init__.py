from kyc_app.models.kyc import KYCRecord, PanFingerprint

__all__ = ["KYCRecord", "PanFingerprint"]
