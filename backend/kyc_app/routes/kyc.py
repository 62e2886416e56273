"""
KYC Routes — Submission, retrieval, update, verification and deletion of KYC records.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from kyc_app.config import get_settings
from kyc_app.database import get_db
from kyc_app.exceptions import (
    ConflictError, KYCError, NotFoundError, PersistenceError, ValidationError,
)
from kyc_app.schemas.schemas import (
    KYCSubmissionRequest, KYCSubmissionResponse, KYCRecordView, KYCCustomerRecordsResponse,
    KYCUpdateRequest, VerificationStatusRequest, RiskAssessmentRequest, KYCStatusResponse,
)
from kyc_app.services.kyc_service import KYCService
from kyc_app.services.repository import InMemoryKYCRepository, SQLKYCRepository

settings = get_settings()
router = APIRouter(prefix="/api/kyc", tags=["KYC"])

# Process-wide store for STORAGE_BACKEND=memory
memory_repository = InMemoryKYCRepository()


def get_kyc_service(db: Session = Depends(get_db)) -> KYCService:
    """FastAPI dependency: a KYC service bound to the configured storage backend."""
    if settings.STORAGE_BACKEND == "memory":
        return KYCService.from_settings(memory_repository, settings)
    return KYCService.from_settings(SQLKYCRepository(db), settings)


def to_http_error(exc: KYCError) -> HTTPException:
    """Map service errors onto HTTP status codes."""
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=400,
            detail={"message": exc.message, "field": exc.field, "missing_fields": exc.missing_fields},
        )
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=500, detail="Storage error, please retry")
    return HTTPException(status_code=500, detail=str(exc))


def _status_response(record) -> KYCStatusResponse:
    return KYCStatusResponse(
        success=True,
        kyc_id=record.id,
        verification_status=record.verification_status,
        risk_assessment=record.risk_assessment,
        updated_at=record.updated_at,
    )


@router.post("/{customer_id}", response_model=KYCSubmissionResponse, status_code=201)
def submit_kyc(
    customer_id: str,
    payload: KYCSubmissionRequest,
    request: Request,
    service: KYCService = Depends(get_kyc_service),
):
    """Submit KYC data for a customer. Sensitive fields are encrypted before storage."""
    request_info = {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent", ""),
    }
    try:
        record = service.create_record(
            payload.model_dump(exclude_none=True),
            customer_id=customer_id,
            request_metadata=request_info,
        )
    except KYCError as exc:
        raise to_http_error(exc) from exc

    return KYCSubmissionResponse(
        success=True,
        kyc_id=record.id,
        verification_status=record.verification_status,
        encryption_version=(record.record_metadata or {}).get("encryption_version"),
        created_at=record.created_at,
    )


@router.get("/submission/{kyc_id}", response_model=KYCRecordView)
def get_submission(kyc_id: str, service: KYCService = Depends(get_kyc_service)):
    """Get a single KYC record with its sensitive fields decrypted."""
    try:
        record = service.get_record(kyc_id)
    except KYCError as exc:
        raise to_http_error(exc) from exc
    return service.retrieve_record(record)


@router.patch("/submission/{kyc_id}", response_model=KYCRecordView)
def update_submission(
    kyc_id: str,
    payload: KYCUpdateRequest,
    service: KYCService = Depends(get_kyc_service),
):
    """Update KYC fields. Changed sensitive fields are re-validated and re-encrypted."""
    try:
        record = service.get_record(kyc_id)
        record = service.update_record(record, payload.fields)
    except KYCError as exc:
        raise to_http_error(exc) from exc
    return service.retrieve_record(record)


@router.get("/{customer_id}", response_model=KYCCustomerRecordsResponse)
def get_customer_kyc(customer_id: str, service: KYCService = Depends(get_kyc_service)):
    """Get every KYC record submitted for a customer, decrypted."""
    records = service.records_for_customer(customer_id)
    if not records:
        raise HTTPException(status_code=404, detail="No KYC records found for this customer")

    return KYCCustomerRecordsResponse(
        customer_id=customer_id,
        total=len(records),
        records=[service.retrieve_record(r) for r in records],
    )


@router.put("/{kyc_id}/verify", response_model=KYCStatusResponse)
def verify_kyc(
    kyc_id: str,
    payload: VerificationStatusRequest,
    service: KYCService = Depends(get_kyc_service),
):
    """Move a KYC record to pending / verified / rejected / expired."""
    try:
        record = service.get_record(kyc_id)
        record = service.set_verification_status(
            record, payload.status, notes=payload.notes, verified_by=payload.verified_by,
        )
    except KYCError as exc:
        raise to_http_error(exc) from exc
    return _status_response(record)


@router.put("/{kyc_id}/risk", response_model=KYCStatusResponse)
def set_risk_assessment(
    kyc_id: str,
    payload: RiskAssessmentRequest,
    service: KYCService = Depends(get_kyc_service),
):
    """Record the compliance risk assessment (low / medium / high)."""
    try:
        record = service.get_record(kyc_id)
        record = service.update_risk_assessment(record, payload.risk_assessment)
    except KYCError as exc:
        raise to_http_error(exc) from exc
    return _status_response(record)


@router.delete("/{kyc_id}")
def delete_kyc(kyc_id: str, service: KYCService = Depends(get_kyc_service)):
    """Delete a KYC record together with its PAN fingerprint entry."""
    try:
        record = service.get_record(kyc_id)
        service.delete_record(record)
    except KYCError as exc:
        raise to_http_error(exc) from exc
    return {"success": True, "kyc_id": kyc_id, "message": "KYC record deleted"}
