"""
Vessel Schemas
Tanks, barrels, liquid map and cellar transfers
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime
import uuid

from ciderhouse.schemas.common import UTCDateTime

VolumeUnit = Literal["L", "gal", "mL"]
WOOD = "wood"
STAINLESS = "stainless_steel"


class BarrelOriginTypeCreate(BaseModel):
    """Create barrel origin type request"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class BarrelOriginTypeResponse(BaseModel):
    """Barrel origin type response"""
    id: uuid.UUID
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class VesselFields(BaseModel):
    """Fields shared by create and update, with material-dependent rules"""
    material: Optional[Literal["stainless_steel", "plastic", "wood", "glass", "other"]] = None
    jacketed: Optional[bool] = None
    is_pressure_vessel: Optional[bool] = None
    is_barrel: Optional[bool] = None
    barrel_origin_type_id: Optional[uuid.UUID] = None
    toast_level: Optional[Literal["light", "medium", "medium_plus", "heavy", "char"]] = None
    year_acquired: Optional[int] = Field(None, ge=1800, le=2100)

    @model_validator(mode="after")
    def check_material_fields(self):
        if self.material is not None and self.material != STAINLESS:
            if self.jacketed or self.is_pressure_vessel:
                raise ValueError("Jacketed and pressure-vessel options apply to stainless steel only")

        barrel_fields = [self.barrel_origin_type_id, self.toast_level, self.year_acquired]
        if any(v is not None for v in barrel_fields):
            if self.material is not None and self.material != WOOD and not self.is_barrel:
                raise ValueError("Barrel details require wood material or a barrel vessel")
        return self


class VesselCreate(VesselFields):
    """Create vessel request"""
    name: str = Field(..., min_length=1, max_length=100)
    capacity: float = Field(..., gt=0)
    capacity_unit: VolumeUnit = "L"
    working_capacity: Optional[float] = Field(None, gt=0)
    material: Literal["stainless_steel", "plastic", "wood", "glass", "other"] = "stainless_steel"
    location: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_working_capacity(self):
        if self.working_capacity is not None and self.working_capacity > self.capacity:
            raise ValueError("Working capacity cannot exceed maximum capacity")
        return self


class VesselUpdate(VesselFields):
    """Update vessel request"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    capacity: Optional[float] = Field(None, gt=0)
    capacity_unit: Optional[VolumeUnit] = None
    working_capacity: Optional[float] = Field(None, gt=0)
    location: Optional[str] = None
    notes: Optional[str] = None


class VesselStatusUpdate(BaseModel):
    status: Literal["available", "cleaning", "maintenance"]


class VesselResponse(BaseModel):
    """Vessel response"""
    id: uuid.UUID
    name: str
    capacity: float
    capacity_unit: str
    capacity_l: float
    working_capacity_l: Optional[float] = None
    material: str
    jacketed: bool
    is_pressure_vessel: bool
    is_barrel: bool
    barrel_origin_type_id: Optional[uuid.UUID] = None
    toast_level: Optional[str] = None
    year_acquired: Optional[int] = None
    status: str
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LiquidMapEntry(BaseModel):
    """Vessel with what it currently holds"""
    vessel_id: uuid.UUID
    vessel_name: str
    status: str
    material: str
    capacity_l: float
    working_capacity_l: Optional[float] = None
    current_volume_l: float
    fill_percent: float
    has_liquid: bool
    batch_id: Optional[uuid.UUID] = None
    batch_name: Optional[str] = None
    product_type: Optional[str] = None


class TransferRequest(BaseModel):
    """Vessel-to-vessel transfer request"""
    from_vessel_id: uuid.UUID
    to_vessel_id: uuid.UUID
    volume: float
    loss: float = 0.0
    unit: VolumeUnit = "L"
    transferred_at: Optional[UTCDateTime] = None
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class TransferPreview(BaseModel):
    """Result of submitting or confirming a transfer"""
    state: Literal["pending_confirmation", "committed"]
    from_vessel_id: uuid.UUID
    to_vessel_id: uuid.UUID
    volume_l: float
    loss_l: float
    total_used_l: float
    remaining: float
    unit: str
    destination_volume_l: float
    destination_after_l: float
    requires_blend_confirmation: bool = False
    confirmation_token: Optional[str] = None
    warnings: List[str] = []
    transfer_id: Optional[uuid.UUID] = None
    destination_batch_id: Optional[uuid.UUID] = None


class TransferConfirmRequest(BaseModel):
    confirmation_token: str
