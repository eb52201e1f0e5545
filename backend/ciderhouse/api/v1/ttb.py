"""
TTB Endpoints
Batch reconciliation, verification, period finalization and Form 5120.17
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional, Tuple

from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_admin
from ciderhouse.schemas.reports import DocumentResponse
from ciderhouse.schemas.ttb import (
    ReconciliationSummary,
    ReconciliationViewResponse,
    ValidateAndVerifyRequest,
    ValidateAndVerifyResponse,
    BulkStatusUpdateRequest,
    BulkStatusUpdateResponse,
    AutoVerifyResponse,
    FinalizePeriodRequest,
    FinalizedPeriodResponse,
    Form512017Response,
)
from ciderhouse.services.export_service import reconciliation_csv
from ciderhouse.services.pdf_service import ttb_form_pdf
from ciderhouse.services.period_service import build_period_query, is_valid_period, parse_period_query
from ciderhouse.services.reconciliation_service import ReconciliationService
from ciderhouse.services.reconciliation_view import AutoVerifier, ReconciliationView
from ciderhouse.services.verification_service import VerificationService

router = APIRouter()

# Remembers the last auto-verified (period, batch set) across requests
auto_verifier = AutoVerifier()


def _period(year: Optional[str], period: Optional[str]) -> Tuple[int, str]:
    params = {k: v for k, v in (("year", year), ("period", period)) if v is not None}
    return parse_period_query(params, datetime.utcnow().year)


@router.get("/reconciliation", response_model=ReconciliationSummary)
def reconciliation_summary(
    year: Optional[str] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Batches, per-batch reconciliation and TTB totals for a period"""
    year_value, period_value = _period(year, period)
    return ReconciliationService(db).get_reconciliation_summary(year_value, period_value)


@router.get("/reconciliation/view", response_model=ReconciliationViewResponse)
def reconciliation_view(
    year: Optional[str] = None,
    period: Optional[str] = None,
    product_type: Optional[str] = None,
    reconciliation_status: Optional[str] = None,
    search: Optional[str] = None,
    validation_filter: Optional[str] = None,
    ttb_filter: Optional[str] = None,
    sort_field: Optional[str] = None,
    sort_direction: str = "asc",
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Reconciliation table with filters and sort applied"""
    year_value, period_value = _period(year, period)
    summary = ReconciliationService(db).get_reconciliation_summary(year_value, period_value)

    view = ReconciliationView(summary.batches, summary.batch_recon)
    try:
        view.set_product_type_filter(product_type)
        view.set_status_filter(reconciliation_status)
        view.set_search(search)
        if validation_filter:
            view.toggle_validation_filter(validation_filter)
        view.set_ttb_filter(ttb_filter)
        view.set_sort(sort_field or view.sort_field, sort_direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ReconciliationViewResponse(
        year=year_value,
        period=period_value,
        period_query=build_period_query(year_value, period_value),
        product_type=view.product_type_filter,
        reconciliation_status=view.status_filter,
        search=view.search,
        validation_filter=view.validation_filter,
        ttb_filter=view.ttb_filter,
        sort_field=view.sort_field,
        sort_direction=view.sort_direction,
        counts=view.summary_counts(),
        rows=view.rows(),
        totals=summary.totals,
        period_finalized=summary.period_finalized,
    )


@router.post("/reconciliation/auto-verify", response_model=AutoVerifyResponse)
def auto_verify(
    year: Optional[str] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_admin)
):
    """Verify every passing batch when the whole period reconciles"""
    year_value, period_value = _period(year, period)
    summary = ReconciliationService(db).get_reconciliation_summary(year_value, period_value)
    verification = VerificationService(db)
    result = {}

    def verify(batch_ids, force, verify_year):
        result.update(verification.validate_and_verify(batch_ids, verify_year, force))

    decision = auto_verifier.maybe_verify(
        summary.period_start,
        summary.period_end,
        summary.batches,
        summary.batch_recon,
        summary.totals,
        summary.period_finalized or verification.is_year_locked(year_value),
        verify,
    )
    return AutoVerifyResponse(
        fired=decision.fired,
        key=decision.key,
        reason=decision.reason,
        verified=result.get("verified", []),
    )


@router.post("/reconciliation/validate-and-verify", response_model=ValidateAndVerifyResponse)
def validate_and_verify(
    request: ValidateAndVerifyRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_admin)
):
    """Verify selected batches; warnings need force_verify_warnings"""
    return VerificationService(db).validate_and_verify(
        request.batch_ids, request.year, request.force_verify_warnings
    )


@router.post("/reconciliation/status", response_model=BulkStatusUpdateResponse)
def bulk_update_status(
    request: BulkStatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_admin)
):
    """Set reconciliation status for selected batches"""
    updated = VerificationService(db).bulk_update_status(request.batch_ids, request.status, request.year)
    return BulkStatusUpdateResponse(updated=updated, status=request.status)


@router.get("/reconciliation/export")
def export_reconciliation(
    year: Optional[str] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Reconciliation as CSV"""
    year_value, period_value = _period(year, period)
    summary = ReconciliationService(db).get_reconciliation_summary(year_value, period_value)
    filename = f"batch-reconciliation-{year_value}-{period_value}.csv"
    return Response(
        content=reconciliation_csv(summary),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.get("/form-5120-17", response_model=Form512017Response)
def form_512017(
    year: Optional[str] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Form 5120.17 Part I preview"""
    year_value, period_value = _period(year, period)
    return ReconciliationService(db).form_512017(year_value, period_value)


@router.get("/form-5120-17/pdf", response_model=DocumentResponse)
def form_512017_pdf(
    year: Optional[str] = None,
    period: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Form 5120.17 Part I as PDF"""
    year_value, period_value = _period(year, period)
    return ttb_form_pdf(ReconciliationService(db).form_512017(year_value, period_value))


@router.get("/periods", response_model=List[FinalizedPeriodResponse])
def list_finalized_periods(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Finalized reporting periods"""
    return ReconciliationService(db).finalized_periods()


@router.post("/periods/finalize", response_model=FinalizedPeriodResponse)
def finalize_period(
    request: FinalizePeriodRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_admin)
):
    """Snapshot totals and lock a reporting period (admin only)"""
    if not is_valid_period(request.period):
        raise HTTPException(status_code=400, detail=f"Unknown period: {request.period}")
    return ReconciliationService(db).finalize_period(request.year, request.period, current_user["user_id"])


@router.post("/periods/reopen", response_model=FinalizedPeriodResponse)
def reopen_period(
    request: FinalizePeriodRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_admin)
):
    """Unlock a finalized reporting period (admin only)"""
    if not is_valid_period(request.period):
        raise HTTPException(status_code=400, detail=f"Unknown period: {request.period}")
    return ReconciliationService(db).reopen_period(request.year, request.period)
