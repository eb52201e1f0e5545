"""
Vessel Endpoints
Tanks and barrels, the liquid map and cellar transfers
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import uuid

from ciderhouse.core.database import get_db
from ciderhouse.core.security import get_current_user, require_operator
from ciderhouse.models import BarrelOriginType, Vessel, VesselStatus
from ciderhouse.schemas.vessel import (
    BarrelOriginTypeCreate,
    BarrelOriginTypeResponse,
    VesselCreate,
    VesselUpdate,
    VesselStatusUpdate,
    VesselResponse,
    LiquidMapEntry,
    TransferRequest,
    TransferPreview,
    TransferConfirmRequest,
)
from ciderhouse.services.transfer_service import TransferService, TransferWorkflow
from ciderhouse.services.vessel_service import VesselService

router = APIRouter()


@router.get("/barrel-origin-types", response_model=List[BarrelOriginTypeResponse])
def list_barrel_origin_types(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List barrel origin types"""
    return db.query(BarrelOriginType).order_by(BarrelOriginType.name).all()


@router.post("/barrel-origin-types", response_model=BarrelOriginTypeResponse, status_code=status.HTTP_201_CREATED)
def create_barrel_origin_type(
    data: BarrelOriginTypeCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create barrel origin type"""
    existing = db.query(BarrelOriginType).filter(BarrelOriginType.name == data.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Barrel origin type already exists")

    origin = BarrelOriginType(name=data.name, description=data.description)
    db.add(origin)
    db.commit()
    db.refresh(origin)
    return origin


@router.delete("/barrel-origin-types/{origin_id}")
def delete_barrel_origin_type(
    origin_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Delete barrel origin type; vessels using it keep no origin"""
    origin = db.query(BarrelOriginType).filter(BarrelOriginType.id == origin_id).first()
    if not origin:
        raise HTTPException(status_code=404, detail="Barrel origin type not found")

    db.delete(origin)
    db.commit()
    return {"message": "Barrel origin type deleted successfully"}


@router.get("/liquid-map", response_model=List[LiquidMapEntry])
def liquid_map(
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Every vessel with its active batch and fill level"""
    return VesselService(db).liquid_map()


@router.post("/transfers", response_model=TransferPreview)
def submit_transfer(
    request: TransferRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """
    Submit a vessel-to-vessel transfer

    Transfers into an empty vessel commit immediately. Blends into a vessel
    that already holds liquid return a confirmation token instead.
    """
    workflow = TransferWorkflow(TransferService(db), current_user["user_id"])
    return workflow.submit(request)


@router.post("/transfers/confirm", response_model=TransferPreview)
def confirm_transfer(
    request: TransferConfirmRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Commit a blend that is awaiting confirmation"""
    workflow = TransferWorkflow.resume(TransferService(db), request.confirmation_token, current_user["user_id"])
    return workflow.confirm()


@router.get("/", response_model=List[VesselResponse])
def list_vessels(
    status_filter: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """List vessels"""
    query = db.query(Vessel)
    if status_filter:
        try:
            query = query.filter(Vessel.status == VesselStatus(status_filter))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown vessel status: {status_filter}")
    return query.order_by(Vessel.name).all()


@router.post("/", response_model=VesselResponse, status_code=status.HTTP_201_CREATED)
def create_vessel(
    data: VesselCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Create vessel"""
    return VesselService(db).create(data)


@router.get("/{vessel_id}", response_model=VesselResponse)
def get_vessel(
    vessel_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(get_current_user)
):
    """Get vessel by ID"""
    return VesselService(db).get(vessel_id)


@router.patch("/{vessel_id}", response_model=VesselResponse)
def update_vessel(
    vessel_id: uuid.UUID,
    data: VesselUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Update vessel"""
    return VesselService(db).update(vessel_id, data)


@router.put("/{vessel_id}/status", response_model=VesselResponse)
def set_vessel_status(
    vessel_id: uuid.UUID,
    data: VesselStatusUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Set vessel status (available, cleaning, maintenance)"""
    return VesselService(db).set_status(vessel_id, data.status)


@router.delete("/{vessel_id}")
def delete_vessel(
    vessel_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_operator)
):
    """Delete vessel; refused while a batch is active in it"""
    VesselService(db).delete(vessel_id)
    return {"message": "Vessel deleted successfully"}
