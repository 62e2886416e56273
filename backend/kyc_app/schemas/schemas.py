"""
Pydantic Schemas — Request & Response models for API validation.

Submission fields are all optional here: presence and format are enforced by
the KYC service so that every missing field is reported together.
"""
from datetime import datetime
from typing import Optional, Dict, List
from pydantic import BaseModel, Field


# ──────────────── KYC Submission ────────────────

class KYCSubmissionRequest(BaseModel):
    gov_id: Optional[str] = Field(None, alias="govID", description="Government ID (5-20 alphanumeric)")
    gov_id_type: Optional[str] = Field(None, alias="govIdType")
    kyc_address: Optional[str] = Field(None, alias="kycAddress")
    kyc_dob: Optional[str] = Field(None, alias="kycDob", description="Date of birth, e.g. 1990-01-15")
    pan: Optional[str] = Field(None, description="PAN (10 alphanumeric)")
    aadhaar_number: Optional[str] = Field(None, alias="aadhaarNumber", description="Aadhaar (12 digits)")
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(None, alias="postalCode")
    country: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    politically_exposed_person: Optional[bool] = Field(None, alias="politicallyExposedPerson")
    submission_source: Optional[str] = Field(None, alias="submissionSource")

    class Config:
        populate_by_name = True


class KYCSubmissionResponse(BaseModel):
    success: bool
    kyc_id: str
    verification_status: str = "pending"
    encryption_version: Optional[str] = None
    created_at: datetime
    message: str = "KYC submitted successfully"


class KYCRecordView(BaseModel):
    """Decrypted record. A sensitive field that could not be decrypted is null."""
    id: str
    customer_id: Optional[str] = None
    gov_id: Optional[str] = None
    gov_id_type: Optional[str] = None
    kyc_address: Optional[str] = None
    kyc_dob: Optional[str] = None
    pan: Optional[str] = None
    aadhaar_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    politically_exposed_person: bool = False
    risk_assessment: Optional[str] = None
    verification_status: str
    verification_notes: Optional[str] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    submission_source: Optional[str] = None
    encryption_version: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class KYCCustomerRecordsResponse(BaseModel):
    customer_id: str
    total: int
    records: List[KYCRecordView]


class KYCUpdateRequest(BaseModel):
    fields: Dict = Field(..., description="Key-value pairs of KYC fields to update")


class VerificationStatusRequest(BaseModel):
    status: str = Field(..., description="pending | verified | rejected | expired")
    notes: Optional[str] = None
    verified_by: Optional[str] = None


class RiskAssessmentRequest(BaseModel):
    risk_assessment: str = Field(..., description="low | medium | high")


class KYCStatusResponse(BaseModel):
    success: bool
    kyc_id: str
    verification_status: str
    risk_assessment: Optional[str] = None
    updated_at: Optional[datetime] = None


# ──────────────── Admin ────────────────

class KYCStatsResponse(BaseModel):
    total_records: int
    unique_pans: int
    by_status: Dict[str, int]


class KYCListResponse(BaseModel):
    total: int
    records: List[Dict]
