"""
Models Package
Imports all SQLAlchemy models for the Ciderhouse platform
"""

from ciderhouse.models.user import User, RoleEnum
from ciderhouse.models.vendor import Vendor, FruitVariety, VendorVariety, FruitType
from ciderhouse.models.purchase import Purchase, PurchaseLine, PurchaseUnit, WEIGHT_PURCHASE_UNITS
from ciderhouse.models.vessel import (
    Vessel,
    BarrelOriginType,
    VesselMaterial,
    VesselStatus,
    ToastLevel
)
from ciderhouse.models.batch import (
    Batch,
    BatchMeasurement,
    BatchAdditive,
    ProductType,
    BatchStatus,
    ReconciliationStatus,
    CLOSED_BATCH_STATUSES
)
from ciderhouse.models.ledger import (
    BatchTransfer,
    BatchMerge,
    PackagingRun,
    BatchVolumeAdjustment,
    BatchLoss,
    Distillation,
    BatchCarbonation,
    PackagingKind,
    LossKind
)
from ciderhouse.models.inventory import (
    InventoryItem,
    InventoryTransaction,
    MaterialType,
    TransactionType
)
from ciderhouse.models.ttb import TTBReportingPeriod, PeriodStatus

__all__ = [
    # Core
    "User",
    "RoleEnum",

    # Vendors & Purchasing
    "Vendor",
    "FruitVariety",
    "VendorVariety",
    "FruitType",
    "Purchase",
    "PurchaseLine",
    "PurchaseUnit",
    "WEIGHT_PURCHASE_UNITS",

    # Vessels
    "Vessel",
    "BarrelOriginType",
    "VesselMaterial",
    "VesselStatus",
    "ToastLevel",

    # Batches
    "Batch",
    "BatchMeasurement",
    "BatchAdditive",
    "ProductType",
    "BatchStatus",
    "ReconciliationStatus",
    "CLOSED_BATCH_STATUSES",

    # Ledger (IMMUTABLE)
    "BatchTransfer",
    "BatchMerge",
    "PackagingRun",
    "BatchVolumeAdjustment",
    "BatchLoss",
    "Distillation",
    "BatchCarbonation",
    "PackagingKind",
    "LossKind",

    # Inventory
    "InventoryItem",
    "InventoryTransaction",
    "MaterialType",
    "TransactionType",

    # TTB
    "TTBReportingPeriod",
    "PeriodStatus",
]
