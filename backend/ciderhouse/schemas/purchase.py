"""
Purchase Schemas
Purchases with line items; only header fields are editable after creation
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime
import uuid

PurchaseUnit = Literal["kg", "lb", "bushel", "L", "gal"]


class PurchaseLineCreate(BaseModel):
    """Purchase line item"""
    variety_id: Optional[uuid.UUID] = None
    quantity: float = Field(..., gt=0)
    unit: PurchaseUnit = "kg"
    price_per_unit: Optional[float] = Field(None, ge=0)
    harvest_date: Optional[date] = None
    notes: Optional[str] = None


class PurchaseCreate(BaseModel):
    """Create purchase request"""
    vendor_id: uuid.UUID
    purchase_date: date
    invoice_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    lines: List[PurchaseLineCreate] = Field(..., min_length=1)


class PurchaseUpdate(BaseModel):
    """Header-only update"""
    vendor_id: Optional[uuid.UUID] = None
    purchase_date: Optional[date] = None
    invoice_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PurchaseLineResponse(BaseModel):
    id: uuid.UUID
    variety_id: Optional[uuid.UUID] = None
    variety_name: Optional[str] = None
    quantity: float
    unit: str
    quantity_kg: Optional[float] = None
    quantity_l: Optional[float] = None
    price_per_unit: Optional[float] = None
    total_cost: Optional[float] = None
    harvest_date: Optional[date] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class PurchaseResponse(BaseModel):
    """Purchase response"""
    id: uuid.UUID
    vendor_id: uuid.UUID
    vendor_name: Optional[str] = None
    purchase_date: date
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    total_cost: float
    lines: List[PurchaseLineResponse]
    created_at: datetime

    class Config:
        from_attributes = True


class PurchasePage(BaseModel):
    items: List[PurchaseResponse]
    total: int
    limit: int
    offset: int
