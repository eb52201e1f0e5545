"""
Vendor Schemas
Vendors, fruit varieties and vendor-variety links
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Literal
from datetime import datetime
import uuid


class VendorCreate(BaseModel):
    """Create vendor request"""
    name: str = Field(..., min_length=1, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class VendorUpdate(BaseModel):
    """Update vendor request"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class VendorResponse(BaseModel):
    """Vendor response"""
    id: uuid.UUID
    name: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VendorPage(BaseModel):
    """Paginated vendor list"""
    items: List[VendorResponse]
    total: int
    limit: int
    offset: int


class FruitVarietyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    fruit_type: Literal["apple", "pear", "other"] = "apple"


class FruitVarietyResponse(BaseModel):
    id: uuid.UUID
    name: str
    fruit_type: str

    class Config:
        from_attributes = True


class VendorVarietyCreate(BaseModel):
    """Attach a variety to a vendor, by id or by name (created if new)"""
    variety_id: Optional[uuid.UUID] = None
    variety_name: Optional[str] = Field(None, min_length=1, max_length=100)
    fruit_type: Literal["apple", "pear", "other"] = "apple"
    notes: Optional[str] = None


class VendorVarietyResponse(BaseModel):
    id: uuid.UUID
    vendor_id: uuid.UUID
    variety: FruitVarietyResponse
    notes: Optional[str] = None

    class Config:
        from_attributes = True
