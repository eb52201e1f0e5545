"""
Inventory Endpoints
Material transactions, on-hand summary and packaging runs
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Literal, Optional
import uuid

from ciderhouse.core.config import settings
from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_operator
from ciderhouse.schemas.inventory import (
    InventoryTransactionCreate,
    InventoryTransactionResponse,
    InventoryTransactionPage,
    OnHandResponse,
    PackagingRunCreate,
    PackagingRunResponse,
    PackagingRunPage,
)
from ciderhouse.services.inventory_service import InventoryService, transaction_to_dict
from ciderhouse.services.packaging_service import PackagingService, run_to_dict

router = APIRouter()

MaterialFilter = Optional[Literal["additive", "juice", "packaging", "apple"]]


@router.post("/transactions", response_model=InventoryTransactionResponse, status_code=status.HTTP_201_CREATED)
def record_transaction(
    payload: InventoryTransactionCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Record a purchase, usage or adjustment for any material type"""
    txn = InventoryService(db).record_transaction(payload)
    return transaction_to_dict(txn)


@router.get("/transactions", response_model=InventoryTransactionPage)
def list_transactions(
    material_type: MaterialFilter = None,
    search: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List inventory transactions, newest first"""
    return InventoryService(db).list_transactions(material_type, search, from_date, to_date, limit, offset)


@router.get("/on-hand", response_model=List[OnHandResponse])
def on_hand(
    material_type: MaterialFilter = None,
    as_of: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """On-hand quantity per item in its base unit"""
    return InventoryService(db).calculate_on_hand(material_type, as_of)


@router.post("/packaging-runs", response_model=PackagingRunResponse, status_code=status.HTTP_201_CREATED)
def record_packaging_run(
    data: PackagingRunCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Record a bottling or kegging run"""
    run = PackagingService(db).record_run(data)
    return run_to_dict(run)


@router.get("/packaging-runs", response_model=PackagingRunPage)
def list_packaging_runs(
    kind: Optional[Literal["bottling", "kegging"]] = None,
    batch_id: Optional[uuid.UUID] = None,
    sort_by: Literal["packaged_at", "volume"] = "packaged_at",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List packaging runs"""
    return PackagingService(db).list_runs(kind, batch_id, sort_by, sort_order, limit, offset)
