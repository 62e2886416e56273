"""
Admin Routes — Compliance dashboard over the KYC store.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from kyc_app.models.kyc import VERIFICATION_STATUSES
from kyc_app.routes.kyc import get_kyc_service
from kyc_app.schemas.schemas import KYCListResponse, KYCStatsResponse
from kyc_app.services.kyc_service import KYCService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/stats", response_model=KYCStatsResponse)
def get_stats(service: KYCService = Depends(get_kyc_service)):
    """Record and fingerprint counts for the dashboard."""
    return service.stats()


@router.get("/kyc", response_model=KYCListResponse)
def list_kyc(
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    service: KYCService = Depends(get_kyc_service),
):
    """List KYC records (no sensitive fields) with an optional status filter."""
    if status and status not in VERIFICATION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status: {status}")

    return KYCListResponse(
        total=service.count_records(status),
        records=service.list_records(limit=limit, offset=offset, status=status),
    )
