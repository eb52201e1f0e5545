"""
Batch Schemas
Batches, measurements and additives
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
import uuid

from ciderhouse.schemas.common import UTCDateTime

ProductType = Literal["cider", "perry", "brandy", "pommeau", "juice", "other"]
BatchStatus = Literal["fermentation", "aging", "conditioning", "completed", "discarded"]


class BatchCreate(BaseModel):
    """Create batch request"""
    name: str = Field(..., min_length=1, max_length=200)
    custom_name: Optional[str] = Field(None, max_length=200)
    batch_number: Optional[str] = Field(None, max_length=50)
    vessel_id: Optional[uuid.UUID] = None
    parent_batch_id: Optional[uuid.UUID] = None
    product_type: ProductType = "cider"
    status: BatchStatus = "fermentation"
    initial_volume: float = Field(..., ge=0)
    unit: Literal["L", "gal", "mL"] = "L"
    start_date: UTCDateTime
    notes: Optional[str] = None


class BatchUpdate(BaseModel):
    """Update batch request"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    custom_name: Optional[str] = Field(None, max_length=200)
    batch_number: Optional[str] = Field(None, max_length=50)
    vessel_id: Optional[uuid.UUID] = None
    product_type: Optional[ProductType] = None
    status: Optional[BatchStatus] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    actual_abv: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


class BatchResponse(BaseModel):
    """Batch response"""
    id: uuid.UUID
    name: str
    custom_name: Optional[str] = None
    batch_number: Optional[str] = None
    vessel_id: Optional[uuid.UUID] = None
    parent_batch_id: Optional[uuid.UUID] = None
    product_type: Optional[str] = None
    status: str
    initial_volume_l: float
    current_volume_l: float
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    actual_abv: Optional[float] = None
    reconciliation_status: str
    verified_for_year: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MeasurementCreate(BaseModel):
    """Lab measurement"""
    measured_at: Optional[UTCDateTime] = None
    specific_gravity: Optional[float] = Field(None, gt=0.9, lt=1.2)
    abv: Optional[float] = Field(None, ge=0, le=100)
    ph: Optional[float] = Field(None, ge=0, le=14)
    temperature: Optional[float] = None
    temperature_unit: Literal["C", "F"] = "C"
    notes: Optional[str] = None


class MeasurementResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    measured_at: datetime
    specific_gravity: Optional[float] = None
    abv: Optional[float] = None
    ph: Optional[float] = None
    temperature_c: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class AdditiveCreate(BaseModel):
    """Additive dosed into a batch"""
    additive_name: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    unit: Literal["g", "kg", "mL", "L", "oz", "lb", "tablets"] = "g"
    added_at: Optional[UTCDateTime] = None
    notes: Optional[str] = None


class AdditiveResponse(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    additive_name: str
    amount: float
    unit: str
    added_at: datetime
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class BatchHistoryResponse(BaseModel):
    """Batch with its lab history"""
    batch: BatchResponse
    measurements: List[MeasurementResponse]
    additives: List[AdditiveResponse]


class BatchPage(BaseModel):
    items: List[BatchResponse]
    total: int
    limit: int
    offset: int
