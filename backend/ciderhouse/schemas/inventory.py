"""
Inventory Schemas
Per-material transaction payloads and the common normalized shape
"""

from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Literal, Union
from datetime import datetime
import uuid

from ciderhouse.schemas.common import UTCDateTime

TransactionKind = Literal["purchase", "usage", "adjustment"]


class TransactionBase(BaseModel):
    """Fields every material form collects"""
    item_name: str = Field(..., min_length=1, max_length=200)
    transaction_type: TransactionKind = "purchase"
    quantity: float = Field(..., gt=0)
    adjustment_direction: Literal["increase", "decrease"] = "increase"
    occurred_at: Optional[UTCDateTime] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    reference: Optional[str] = None
    notes: Optional[str] = None


class AppleTransactionCreate(TransactionBase):
    """Apples by weight or bushel"""
    material_type: Literal["apple"] = "apple"
    unit: Literal["bushel", "lb", "kg"] = "kg"


class JuiceTransactionCreate(TransactionBase):
    """Purchased or pressed juice"""
    material_type: Literal["juice"] = "juice"
    unit: Literal["L", "gal", "mL"] = "L"


class AdditiveTransactionCreate(TransactionBase):
    """Yeast, nutrients, sulfite, acids, enzymes"""
    material_type: Literal["additive"] = "additive"
    unit: Literal["g", "kg", "lb", "oz", "mL", "L"] = "g"


class PackagingTransactionCreate(TransactionBase):
    """Bottles, cans, caps, labels, kegs"""
    material_type: Literal["packaging"] = "packaging"
    unit: Literal["units"] = "units"


InventoryTransactionCreate = Annotated[
    Union[
        AppleTransactionCreate,
        JuiceTransactionCreate,
        AdditiveTransactionCreate,
        PackagingTransactionCreate,
    ],
    Field(discriminator="material_type"),
]


class NormalizedTransaction(BaseModel):
    """Common transaction shape every material form is reduced to"""
    material_type: str
    item_name: str
    transaction_type: TransactionKind
    quantity: float
    unit: str
    quantity_normalized: float
    normalized_unit: str
    occurred_at: datetime
    unit_cost: Optional[float] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class InventoryTransactionResponse(BaseModel):
    """Stored inventory transaction"""
    id: uuid.UUID
    item_id: uuid.UUID
    item_name: str
    material_type: str
    transaction_type: str
    quantity: float
    unit: str
    quantity_normalized: float
    normalized_unit: str
    unit_cost: Optional[float] = None
    occurred_at: datetime
    reference: Optional[str] = None
    notes: Optional[str] = None


class InventoryTransactionPage(BaseModel):
    items: List[InventoryTransactionResponse]
    total: int
    limit: int
    offset: int


class OnHandResponse(BaseModel):
    """On-hand quantity per inventory item"""
    item_id: uuid.UUID
    item_name: str
    material_type: str
    quantity: float
    unit: str


class PackagingRunResponse(BaseModel):
    """Packaging run list row"""
    id: uuid.UUID
    batch_id: uuid.UUID
    batch_name: Optional[str] = None
    kind: str
    volume_taken_l: float
    loss_l: float
    units_produced: int
    package_size_ml: Optional[float] = None
    packaged_at: datetime
    notes: Optional[str] = None


class PackagingRunPage(BaseModel):
    items: List[PackagingRunResponse]
    total: int
    limit: int
    offset: int


class PackagingRunCreate(BaseModel):
    """Bottling or kegging run drawn from a batch"""
    batch_id: uuid.UUID
    kind: Literal["bottling", "kegging"]
    volume_taken: float = Field(..., gt=0)
    loss: float = Field(0.0, ge=0)
    unit: Literal["L", "gal", "mL"] = "L"
    units_produced: int = Field(0, ge=0)
    package_size_ml: Optional[float] = Field(None, gt=0)
    packaged_at: Optional[UTCDateTime] = None
    notes: Optional[str] = None
