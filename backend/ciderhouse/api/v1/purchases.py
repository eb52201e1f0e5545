"""
Purchase Endpoints
Fruit and juice purchases, receipts and history export
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
import uuid

from ciderhouse.core.config import settings
from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_operator
from ciderhouse.schemas.purchase import PurchaseCreate, PurchaseUpdate, PurchaseResponse, PurchasePage
from ciderhouse.schemas.reports import DocumentResponse
from ciderhouse.services.export_service import purchases_csv
from ciderhouse.services.pdf_service import purchase_receipt_pdf
from ciderhouse.services.purchase_service import PurchaseService

router = APIRouter()


@router.get("/", response_model=PurchasePage)
def list_purchases(
    vendor_id: Optional[uuid.UUID] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List purchases, newest first"""
    return PurchaseService(db).list(vendor_id, from_date, to_date, limit, offset)


@router.post("/", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
def create_purchase(
    data: PurchaseCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create purchase with its lines"""
    return PurchaseService(db).create(data)


@router.get("/export")
def export_purchases(
    vendor_id: Optional[uuid.UUID] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Purchase history as CSV"""
    page = PurchaseService(db).list(vendor_id, from_date, to_date, limit=100000, offset=0)
    return Response(
        content=purchases_csv(page["items"]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="purchase-history.csv"'}
    )


@router.get("/{purchase_id}", response_model=PurchaseResponse)
def get_purchase(
    purchase_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get purchase by ID"""
    return PurchaseService(db).get(purchase_id)


@router.patch("/{purchase_id}", response_model=PurchaseResponse)
def update_purchase(
    purchase_id: uuid.UUID,
    data: PurchaseUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Update purchase header fields"""
    return PurchaseService(db).update(purchase_id, data)


@router.delete("/{purchase_id}")
def delete_purchase(
    purchase_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Delete purchase and its lines"""
    PurchaseService(db).delete(purchase_id)
    return {"message": "Purchase deleted successfully"}


@router.get("/{purchase_id}/receipt", response_model=DocumentResponse)
def purchase_receipt(
    purchase_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Purchase receipt PDF"""
    purchase = PurchaseService(db).get(purchase_id)
    return purchase_receipt_pdf(purchase)
