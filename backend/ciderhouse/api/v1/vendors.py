"""
Vendor Endpoints
Vendors, fruit varieties and the varieties each vendor supplies
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Literal, Optional
import uuid

from ciderhouse.core.config import settings
from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_operator
from ciderhouse.models import FruitType, FruitVariety, Vendor, VendorVariety
from ciderhouse.schemas.vendor import (
    VendorCreate,
    VendorUpdate,
    VendorResponse,
    VendorPage,
    FruitVarietyCreate,
    FruitVarietyResponse,
    VendorVarietyCreate,
    VendorVarietyResponse,
)

router = APIRouter()

SORT_COLUMNS = {
    "name": Vendor.name,
    "created_at": Vendor.created_at,
    "updated_at": Vendor.updated_at,
}


def _get_vendor(db: Session, vendor_id: uuid.UUID) -> Vendor:
    vendor = db.query(Vendor).filter(Vendor.id == vendor_id).first()
    if not vendor:
        raise HTTPException(status_code=404, detail="Vendor not found")
    return vendor


@router.get("/", response_model=VendorPage)
def list_vendors(
    search: Optional[str] = None,
    include_inactive: bool = False,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sort_by: Literal["name", "created_at", "updated_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List vendors with search and pagination"""
    query = db.query(Vendor)
    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Vendor.name.ilike(pattern),
            Vendor.contact_email.ilike(pattern),
            Vendor.notes.ilike(pattern),
        ))

    column = SORT_COLUMNS[sort_by]
    total = query.count()
    items = (
        query.order_by(column.desc() if sort_order == "desc" else column.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return VendorPage(items=items, total=total, limit=limit, offset=offset)


@router.post("/", response_model=VendorResponse, status_code=status.HTTP_201_CREATED)
def create_vendor(
    vendor_data: VendorCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create vendor"""
    vendor = Vendor(**vendor_data.model_dump())
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


@router.get("/varieties", response_model=List[FruitVarietyResponse])
def list_varieties(
    fruit_type: Optional[Literal["apple", "pear", "other"]] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List fruit varieties"""
    query = db.query(FruitVariety)
    if fruit_type:
        query = query.filter(FruitVariety.fruit_type == FruitType(fruit_type))
    return query.order_by(FruitVariety.name).all()


@router.post("/varieties", response_model=FruitVarietyResponse, status_code=status.HTTP_201_CREATED)
def create_variety(
    data: FruitVarietyCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create fruit variety"""
    existing = db.query(FruitVariety).filter(FruitVariety.name == data.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Variety already exists")

    variety = FruitVariety(name=data.name, fruit_type=FruitType(data.fruit_type))
    db.add(variety)
    db.commit()
    db.refresh(variety)
    return variety


@router.get("/{vendor_id}", response_model=VendorResponse)
def get_vendor(
    vendor_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get vendor by ID"""
    return _get_vendor(db, vendor_id)


@router.patch("/{vendor_id}", response_model=VendorResponse)
def update_vendor(
    vendor_id: uuid.UUID,
    vendor_data: VendorUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Update vendor"""
    vendor = _get_vendor(db, vendor_id)

    for key, value in vendor_data.model_dump(exclude_unset=True).items():
        if key in ("name", "is_active") and value is None:
            continue
        setattr(vendor, key, value)

    db.commit()
    db.refresh(vendor)
    return vendor


@router.delete("/{vendor_id}")
def delete_vendor(
    vendor_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Deactivate vendor; purchase history keeps referencing it"""
    vendor = _get_vendor(db, vendor_id)
    vendor.is_active = False
    db.commit()
    return {"message": "Vendor deactivated successfully"}


@router.get("/{vendor_id}/varieties", response_model=List[VendorVarietyResponse])
def list_vendor_varieties(
    vendor_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Varieties a vendor supplies"""
    _get_vendor(db, vendor_id)
    return (
        db.query(VendorVariety)
        .join(FruitVariety)
        .filter(VendorVariety.vendor_id == vendor_id)
        .order_by(FruitVariety.name)
        .all()
    )


@router.post("/{vendor_id}/varieties", response_model=VendorVarietyResponse, status_code=status.HTTP_201_CREATED)
def attach_variety(
    vendor_id: uuid.UUID,
    data: VendorVarietyCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Link a variety to a vendor, creating the variety by name if needed"""
    _get_vendor(db, vendor_id)

    if data.variety_id:
        variety = db.query(FruitVariety).filter(FruitVariety.id == data.variety_id).first()
        if not variety:
            raise HTTPException(status_code=404, detail="Variety not found")
    elif data.variety_name:
        variety = db.query(FruitVariety).filter(FruitVariety.name == data.variety_name).first()
        if not variety:
            variety = FruitVariety(name=data.variety_name, fruit_type=FruitType(data.fruit_type))
            db.add(variety)
            db.flush()
    else:
        raise HTTPException(status_code=400, detail="variety_id or variety_name is required")

    existing = db.query(VendorVariety).filter(
        VendorVariety.vendor_id == vendor_id,
        VendorVariety.variety_id == variety.id
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Vendor already supplies this variety")

    link = VendorVariety(vendor_id=vendor_id, variety_id=variety.id, notes=data.notes)
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


@router.delete("/{vendor_id}/varieties/{variety_id}")
def detach_variety(
    vendor_id: uuid.UUID,
    variety_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Remove a variety from a vendor"""
    link = db.query(VendorVariety).filter(
        VendorVariety.vendor_id == vendor_id,
        VendorVariety.variety_id == variety_id
    ).first()
    if not link:
        raise HTTPException(status_code=404, detail="Vendor variety not found")

    db.delete(link)
    db.commit()
    return {"message": "Variety removed from vendor"}
