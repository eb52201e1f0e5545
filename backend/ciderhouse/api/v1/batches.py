"""
Batch Endpoints
Batches, lab measurements, additives and validation
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import uuid

from ciderhouse.core.config import settings
from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_operator
from ciderhouse.schemas.batch import (
    BatchCreate,
    BatchUpdate,
    BatchResponse,
    BatchPage,
    BatchHistoryResponse,
    MeasurementCreate,
    MeasurementResponse,
    AdditiveCreate,
    AdditiveResponse,
)
from ciderhouse.schemas.ttb import BatchValidation
from ciderhouse.services.batch_service import BatchService
from ciderhouse.services.batch_validation_service import validate_batch

router = APIRouter()


@router.get("/", response_model=BatchPage)
def list_batches(
    status_filter: Optional[str] = None,
    vessel_id: Optional[uuid.UUID] = None,
    search: Optional[str] = None,
    include_deleted: bool = False,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List batches, most recent first"""
    return BatchService(db).list(status_filter, vessel_id, search, include_deleted, limit, offset)


@router.post("/", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def create_batch(
    data: BatchCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create batch"""
    return BatchService(db).create(data)


@router.get("/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get batch by ID"""
    return BatchService(db).get(batch_id)


@router.patch("/{batch_id}", response_model=BatchResponse)
def update_batch(
    batch_id: uuid.UUID,
    data: BatchUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Update batch"""
    return BatchService(db).update(batch_id, data)


@router.delete("/{batch_id}")
def delete_batch(
    batch_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Soft-delete batch"""
    BatchService(db).delete(batch_id)
    return {"message": "Batch deleted successfully"}


@router.get("/{batch_id}/history", response_model=BatchHistoryResponse)
def batch_history(
    batch_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Batch with its measurements and additives"""
    batch = BatchService(db).get(batch_id)
    return BatchHistoryResponse(
        batch=BatchResponse.model_validate(batch),
        measurements=[MeasurementResponse.model_validate(m) for m in batch.measurements],
        additives=[AdditiveResponse.model_validate(a) for a in batch.additives],
    )


@router.get("/{batch_id}/measurements", response_model=List[MeasurementResponse])
def list_measurements(
    batch_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Lab measurements, oldest first"""
    return BatchService(db).get(batch_id).measurements


@router.post("/{batch_id}/measurements", response_model=MeasurementResponse, status_code=status.HTTP_201_CREATED)
def add_measurement(
    batch_id: uuid.UUID,
    data: MeasurementCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Record a lab measurement"""
    return BatchService(db).add_measurement(batch_id, data)


@router.get("/{batch_id}/additives", response_model=List[AdditiveResponse])
def list_additives(
    batch_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Additives, oldest first"""
    return BatchService(db).get(batch_id).additives


@router.post("/{batch_id}/additives", response_model=AdditiveResponse, status_code=status.HTTP_201_CREATED)
def add_additive(
    batch_id: uuid.UUID,
    data: AdditiveCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Record an additive"""
    return BatchService(db).add_additive(batch_id, data)


@router.get("/{batch_id}/validation", response_model=BatchValidation)
def batch_validation(
    batch_id: uuid.UUID,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Run the reconciliation checks for one batch"""
    batch = BatchService(db).get(batch_id)
    return validate_batch(batch, year or datetime.utcnow().year)
