"""
Schemas Package
Pydantic models for request/response validation
"""

from ciderhouse.schemas.auth import (
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    UserCreate,
    UserUpdate,
    UserResponse,
)

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

from ciderhouse.schemas.purchase import (
    PurchaseCreate,
    PurchaseLineCreate,
    PurchaseUpdate,
    PurchaseLineResponse,
    PurchaseResponse,
    PurchasePage,
)

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

from ciderhouse.schemas.batch import (
    BatchCreate,
    BatchUpdate,
    BatchResponse,
    MeasurementCreate,
    MeasurementResponse,
    AdditiveCreate,
    AdditiveResponse,
    BatchHistoryResponse,
    BatchPage,
)

from ciderhouse.schemas.inventory import (
    InventoryTransactionCreate,
    NormalizedTransaction,
    InventoryTransactionResponse,
    InventoryTransactionPage,
    OnHandResponse,
    PackagingRunCreate,
    PackagingRunResponse,
    PackagingRunPage,
)

from ciderhouse.schemas.ttb import (
    ValidationCheck,
    BatchValidation,
    BatchReconciliation,
    ReconciliationTotals,
    ReconciliationBatch,
    ReconciliationSummary,
    ReconciliationViewResponse,
    ValidateAndVerifyRequest,
    ValidateAndVerifyResponse,
    BulkStatusUpdateRequest,
    BulkStatusUpdateResponse,
    AutoVerifyResponse,
    FinalizePeriodRequest,
    FinalizedPeriodResponse,
    Form512017Response,
)

from ciderhouse.schemas.reports import DocumentResponse

__all__ = [
    # Auth
    "LoginRequest",
    "TokenResponse",
    "RefreshTokenRequest",
    "UserCreate",
    "UserUpdate",
    "UserResponse",

    # Vendors
    "VendorCreate",
    "VendorUpdate",
    "VendorResponse",
    "VendorPage",
    "FruitVarietyCreate",
    "FruitVarietyResponse",
    "VendorVarietyCreate",
    "VendorVarietyResponse",

    # Purchases
    "PurchaseCreate",
    "PurchaseLineCreate",
    "PurchaseUpdate",
    "PurchaseLineResponse",
    "PurchaseResponse",
    "PurchasePage",

    # Vessels & Transfers
    "BarrelOriginTypeCreate",
    "BarrelOriginTypeResponse",
    "VesselCreate",
    "VesselUpdate",
    "VesselStatusUpdate",
    "VesselResponse",
    "LiquidMapEntry",
    "TransferRequest",
    "TransferPreview",
    "TransferConfirmRequest",

    # Batches
    "BatchCreate",
    "BatchUpdate",
    "BatchResponse",
    "MeasurementCreate",
    "MeasurementResponse",
    "AdditiveCreate",
    "AdditiveResponse",
    "BatchHistoryResponse",
    "BatchPage",

    # Inventory
    "InventoryTransactionCreate",
    "NormalizedTransaction",
    "InventoryTransactionResponse",
    "InventoryTransactionPage",
    "OnHandResponse",
    "PackagingRunCreate",
    "PackagingRunResponse",
    "PackagingRunPage",

    # TTB
    "ValidationCheck",
    "BatchValidation",
    "BatchReconciliation",
    "ReconciliationTotals",
    "ReconciliationBatch",
    "ReconciliationSummary",
    "ReconciliationViewResponse",
    "ValidateAndVerifyRequest",
    "ValidateAndVerifyResponse",
    "BulkStatusUpdateRequest",
    "BulkStatusUpdateResponse",
    "AutoVerifyResponse",
    "FinalizePeriodRequest",
    "FinalizedPeriodResponse",
    "Form512017Response",

    # Documents
    "DocumentResponse",
]
