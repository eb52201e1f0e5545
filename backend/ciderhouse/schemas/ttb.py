"""
TTB Reconciliation Schemas
Validation results, per-batch reconciliation and period summaries
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import date, datetime
import uuid

CheckStatus = Literal["pass", "warning", "fail"]
BatchCategory = Literal["carried_forward", "new_production"]


class ValidationCheck(BaseModel):
    """Single batch validation check"""
    check: str
    status: CheckStatus
    message: str


class BatchValidation(BaseModel):
    """Overall validation for a batch"""
    status: CheckStatus
    checks: List[ValidationCheck] = []

    @property
    def warning_count(self) -> int:
        return sum(1 for c in self.checks if c.status == "warning")

    @property
    def issue_count(self) -> int:
        return sum(1 for c in self.checks if c.status == "fail")


class LossBreakdown(BaseModel):
    """Losses by source"""
    racking: float = 0.0
    filter: float = 0.0
    bottling: float = 0.0
    kegging: float = 0.0
    transfer: float = 0.0
    adjustments: float = 0.0


class BatchReconciliation(BaseModel):
    """Per-batch waterfall reconstructed from the batch ledger"""
    batch_id: uuid.UUID

    # Liters
    opening_l: float
    production_l: float
    transfers_in_l: float
    transfers_out_l: float
    merges_in_l: float
    merges_out_l: float
    adjustments_l: float
    losses_l: float
    sales_l: float
    distillation_l: float
    ending_l: float
    reconstructed_ending_l: float
    clamped_l: float = 0.0

    # Wine gallons
    opening_gal: float
    production_gal: float
    net_internal_gal: float
    adjustments_gal: float
    losses_gal: float
    sales_gal: float
    distillation_gal: float
    ending_gal: float

    # Checks
    identity_check: float
    drift_liters: float
    has_initial_volume_anomaly: bool = False
    exceeds_vessel_capacity: bool = False
    loss_breakdown: LossBreakdown = Field(default_factory=LossBreakdown)


class ReconciliationTotals(BaseModel):
    """Aggregate waterfall in wine gallons"""
    opening: float = 0.0
    production: float = 0.0
    net_internal: float = 0.0
    adjustments: float = 0.0
    losses: float = 0.0
    sales: float = 0.0
    distillation: float = 0.0
    ending: float = 0.0
    clamped_offset: float = 0.0
    identity_check: float = 0.0
    variance: float = 0.0
    batches_with_identity_issues: int = 0
    batches_with_drift: int = 0
    batches_with_initial_anomaly: int = 0
    vessel_capacity_warnings: int = 0
    loss_breakdown: LossBreakdown = Field(default_factory=LossBreakdown)


class ReconciliationBatch(BaseModel):
    """Batch row with validation, as listed on the reconciliation page"""
    id: uuid.UUID
    name: str
    custom_name: Optional[str] = None
    batch_number: Optional[str] = None
    product_type: Optional[str] = None
    start_date: Optional[datetime] = None
    initial_volume_l: float = 0.0
    current_volume_l: float = 0.0
    vessel_name: Optional[str] = None
    reconciliation_status: str = "pending"
    verified_for_year: bool = False
    category: BatchCategory = "new_production"
    validation: Optional[BatchValidation] = None

    @property
    def display_name(self) -> str:
        return self.custom_name or self.name


class FinalizedPeriodResponse(BaseModel):
    """Finalized reporting period"""
    id: uuid.UUID
    period_type: str
    period_start: date
    period_end: date
    status: str
    opening_gallons: float
    production_gallons: float
    losses_gallons: float
    sales_gallons: float
    distillation_gallons: float
    ending_gallons: float
    identity_check_gallons: float
    tax_due: float
    finalized_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReconciliationSummary(BaseModel):
    """Everything the reconciliation page needs for a period"""
    year: int
    period: str
    period_label: str
    period_start: date
    period_end: date
    batches: List[ReconciliationBatch]
    batch_recon: Dict[str, BatchReconciliation]
    totals: ReconciliationTotals
    period_finalized: bool = False
    finalized_periods: List[FinalizedPeriodResponse] = []


class ReconciliationRow(BaseModel):
    """Rendered table row: batch plus its reconciliation and badges"""
    batch: ReconciliationBatch
    reconciliation: Optional[BatchReconciliation] = None
    status_label: str
    actions: List[str]
    identity_badge: Optional[Dict] = None
    drift_badge: Optional[Dict] = None


class ReconciliationViewResponse(BaseModel):
    """Filtered and sorted reconciliation table"""
    year: int
    period: str
    period_query: str
    product_type: Optional[str] = None
    reconciliation_status: Optional[str] = None
    search: str = ""
    validation_filter: Optional[str] = None
    ttb_filter: Optional[str] = None
    sort_field: str = "start_date"
    sort_direction: str = "asc"
    counts: Dict[str, int]
    rows: List[ReconciliationRow]
    totals: ReconciliationTotals
    period_finalized: bool = False


class ValidateAndVerifyRequest(BaseModel):
    """Bulk verify request"""
    batch_ids: List[uuid.UUID] = Field(..., min_length=1)
    year: int
    force_verify_warnings: bool = False


class BlockedBatch(BaseModel):
    batch_id: uuid.UUID
    status: str
    reason: str


class ValidateAndVerifyResponse(BaseModel):
    """Bulk verify result"""
    verified: List[uuid.UUID]
    blocked: List[BlockedBatch]


class BulkStatusUpdateRequest(BaseModel):
    """Bulk reconciliation status change"""
    batch_ids: List[uuid.UUID] = Field(..., min_length=1)
    status: Literal["verified", "pending", "duplicate", "excluded"]
    year: Optional[int] = None


class BulkStatusUpdateResponse(BaseModel):
    updated: int
    status: str


class AutoVerifyResponse(BaseModel):
    """Auto-verify outcome"""
    fired: bool
    key: Optional[str] = None
    reason: Optional[str] = None
    verified: List[uuid.UUID] = []


class FinalizePeriodRequest(BaseModel):
    year: int
    period: str = "annual"


class Form512017Response(BaseModel):
    """TTB Form 5120.17 preview data (bulk wine, wine gallons)"""
    period_label: str
    period_type: str
    period_start: date
    period_end: date
    opening: float
    produced: float
    received: float
    removed_taxpaid: float
    used_for_distilling: float
    losses: float
    ending: float
    total_available: float
    total_accounted: float
    variance: float
    is_balanced: bool
    tax: Dict
