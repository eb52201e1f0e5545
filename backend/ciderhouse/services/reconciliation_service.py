"""
Reconciliation Service
Per-batch TTB waterfall built from each batch's own ledger, plus period totals
"""

from sqlalchemy.orm import Session, selectinload
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from ciderhouse.core.errors import PeriodFinalizedError, ReconciliationError
from ciderhouse.core.units import liters_to_wine_gallons, round_gallons
from ciderhouse.models import (
    Batch,
    ProductType,
    ReconciliationStatus,
    TTBReportingPeriod,
    PeriodStatus,
)
from ciderhouse.schemas.ttb import (
    BatchReconciliation,
    FinalizedPeriodResponse,
    LossBreakdown,
    ReconciliationBatch,
    ReconciliationSummary,
    ReconciliationTotals,
)
from ciderhouse.services import batch_ledger as bl
from ciderhouse.services.batch_ledger import BatchLedger
from ciderhouse.services.batch_validation_service import validate_batch
from ciderhouse.services.period_service import (
    format_period_label,
    get_period_date_range,
    period_type,
)
from ciderhouse.services.ttb_calculations import (
    calculate_hard_cider_tax,
    calculate_reconciliation,
    identity_check,
    is_drift_issue,
    is_identity_issue,
)

logger = logging.getLogger(__name__)

EXCLUDED_RECONCILIATION_STATUSES = {ReconciliationStatus.duplicate, ReconciliationStatus.excluded}


def to_gallons(liters: float) -> float:
    """Signed liters to wine gallons, 3 decimals"""
    gallons = liters_to_wine_gallons(abs(liters))
    return round_gallons(gallons if liters >= 0 else -gallons)


def is_eligible(batch: Batch, period_end: date) -> bool:
    """Batch participates in TTB bulk-wine reconciliation"""
    if batch.is_deleted:
        return False
    if batch.reconciliation_status in EXCLUDED_RECONCILIATION_STATUSES:
        return False
    if batch.product_type == ProductType.juice:
        return False
    if batch.start_date is not None and batch.start_date.date() > period_end:
        return False
    return True


def has_initial_volume_anomaly(batch: Batch, ledger: BatchLedger) -> bool:
    """
    Root batch with no initial volume but liquid leaving it, or a child batch
    whose initial volume is only partly explained by transfers in.
    """
    initial = batch.initial_volume_l or 0.0
    if batch.parent_batch_id is None:
        return initial <= 0 and ledger.has_outflows()
    transfers_in = ledger.transfers_in_total
    return initial > 0 and 0 < transfers_in < initial * bl.TRANSFER_CREATED_RATIO


def exceeds_vessel_capacity(batch: Batch) -> bool:
    vessel = batch.vessel
    if vessel is None or not vessel.capacity_l:
        return False
    peak = max(batch.initial_volume_l or 0.0, batch.current_volume_l or 0.0)
    return peak > vessel.capacity_l


def reconcile_batch(batch: Batch, period_start: date, period_end: date) -> BatchReconciliation:
    """
    Waterfall for one batch over (period_start, period_end].

    Opening and ending are clamped at zero; any clamping shows up as a
    nonzero identity check. Drift compares the stored current volume with
    the full-history reconstruction.
    """
    ledger = BatchLedger(batch)
    start_day = ledger.start_day

    opening_raw = ledger.volume_as_of(period_start)
    opening = max(opening_raw, 0.0)

    production = 0.0
    if start_day is not None and period_start < start_day <= period_end:
        production = ledger.effective_initial_l

    flows = ledger.totals_by_category(since=period_start, until=period_end)

    def flow(*categories: str) -> float:
        return sum(flows.get(c, 0.0) for c in categories)

    transfers_in = flow(bl.TRANSFER_IN)
    transfers_out = -flow(bl.TRANSFER_OUT)
    merges_in = flow(bl.MERGE_IN)
    merges_out = -flow(bl.MERGE_OUT)
    adjustments = flow(bl.ADJUSTMENT)
    losses = -flow(*bl.LOSS_CATEGORIES)
    sales = -flow(*bl.SALES_CATEGORIES)
    distillation = -flow(bl.DISTILLATION)

    reconstructed_ending = (
        opening + production + transfers_in + merges_in + adjustments
        - transfers_out - merges_out - losses - sales - distillation
    )
    ending = max(reconstructed_ending, 0.0)
    clamped = (opening - opening_raw) + (ending - reconstructed_ending)

    net_internal = transfers_in + merges_in - transfers_out - merges_out
    gal = {
        "opening": to_gallons(opening),
        "production": to_gallons(production),
        "net_internal": to_gallons(net_internal),
        "adjustments": to_gallons(adjustments),
        "losses": to_gallons(losses),
        "sales": to_gallons(sales),
        "distillation": to_gallons(distillation),
        "ending": to_gallons(ending),
    }
    identity = identity_check(
        gal["opening"],
        gal["production"],
        gal["losses"],
        gal["sales"],
        gal["distillation"],
        gal["ending"],
        inflows=max(gal["net_internal"], 0.0) + max(gal["adjustments"], 0.0),
        outflows=max(-gal["net_internal"], 0.0) + max(-gal["adjustments"], 0.0),
    )

    drift = round((batch.current_volume_l or 0.0) - ledger.reconstructed_volume_l(), 3)

    return BatchReconciliation(
        batch_id=batch.id,
        opening_l=round(opening, 3),
        production_l=round(production, 3),
        transfers_in_l=round(transfers_in, 3),
        transfers_out_l=round(transfers_out, 3),
        merges_in_l=round(merges_in, 3),
        merges_out_l=round(merges_out, 3),
        adjustments_l=round(adjustments, 3),
        losses_l=round(losses, 3),
        sales_l=round(sales, 3),
        distillation_l=round(distillation, 3),
        ending_l=round(ending, 3),
        reconstructed_ending_l=round(reconstructed_ending, 3),
        clamped_l=round(clamped, 3),
        opening_gal=gal["opening"],
        production_gal=gal["production"],
        net_internal_gal=gal["net_internal"],
        adjustments_gal=gal["adjustments"],
        losses_gal=gal["losses"],
        sales_gal=gal["sales"],
        distillation_gal=gal["distillation"],
        ending_gal=gal["ending"],
        identity_check=identity,
        drift_liters=drift,
        has_initial_volume_anomaly=has_initial_volume_anomaly(batch, ledger),
        exceeds_vessel_capacity=exceeds_vessel_capacity(batch),
        loss_breakdown=LossBreakdown(
            racking=round(-flow(bl.RACKING_LOSS), 3),
            filter=round(-flow(bl.FILTER_LOSS), 3),
            bottling=round(-flow(bl.BOTTLING_LOSS), 3),
            kegging=round(-flow(bl.KEGGING_LOSS), 3),
            transfer=round(-flow(bl.TRANSFER_LOSS), 3),
            adjustments=round(adjustments, 3),
        ),
    )


def aggregate_totals(recons: List[BatchReconciliation]) -> ReconciliationTotals:
    """Sum per-batch waterfalls; loss breakdown is reported in gallons"""
    totals = ReconciliationTotals()
    breakdown = LossBreakdown()

    for r in recons:
        totals.opening += r.opening_gal
        totals.production += r.production_gal
        totals.net_internal += r.net_internal_gal
        totals.adjustments += r.adjustments_gal
        totals.losses += r.losses_gal
        totals.sales += r.sales_gal
        totals.distillation += r.distillation_gal
        totals.ending += r.ending_gal
        totals.clamped_offset += to_gallons(r.clamped_l)
        totals.identity_check += r.identity_check

        if is_identity_issue(r.identity_check):
            totals.batches_with_identity_issues += 1
        if is_drift_issue(r.drift_liters):
            totals.batches_with_drift += 1
        if r.has_initial_volume_anomaly:
            totals.batches_with_initial_anomaly += 1
        if r.exceeds_vessel_capacity:
            totals.vessel_capacity_warnings += 1

        for field in LossBreakdown.model_fields:
            value = getattr(breakdown, field) + to_gallons(getattr(r.loss_breakdown, field))
            setattr(breakdown, field, value)

    for field in ("opening", "production", "net_internal", "adjustments", "losses",
                  "sales", "distillation", "ending", "clamped_offset", "identity_check"):
        setattr(totals, field, round_gallons(getattr(totals, field)))
    for field in LossBreakdown.model_fields:
        setattr(breakdown, field, round_gallons(getattr(breakdown, field)))

    totals.loss_breakdown = breakdown
    totals.variance = round_gallons(
        totals.opening + totals.production + totals.net_internal + totals.adjustments
        - totals.losses - totals.sales - totals.distillation - totals.ending
    )
    return totals


class ReconciliationService:
    """TTB reconciliation for a reporting period"""

    def __init__(self, db: Session):
        self.db = db

    def _load_batches(self) -> List[Batch]:
        return self.db.query(Batch).options(
            selectinload(Batch.vessel),
            selectinload(Batch.transfers_in),
            selectinload(Batch.transfers_out),
            selectinload(Batch.merges_in),
            selectinload(Batch.merges_out),
            selectinload(Batch.packaging_runs),
            selectinload(Batch.adjustments),
            selectinload(Batch.losses),
            selectinload(Batch.distillations),
            selectinload(Batch.measurements),
            selectinload(Batch.carbonations),
        ).filter(Batch.deleted_at.is_(None)).order_by(Batch.start_date).all()

    def eligible_batches(self, period_end: date) -> List[Batch]:
        return [b for b in self._load_batches() if is_eligible(b, period_end)]

    def finalized_periods(self) -> List[TTBReportingPeriod]:
        return self.db.query(TTBReportingPeriod).filter(
            TTBReportingPeriod.status == PeriodStatus.finalized
        ).order_by(TTBReportingPeriod.period_start).all()

    def is_period_finalized(self, period_start: date, period_end: date) -> bool:
        return self.db.query(TTBReportingPeriod).filter(
            TTBReportingPeriod.period_start == period_start,
            TTBReportingPeriod.period_end == period_end,
            TTBReportingPeriod.status == PeriodStatus.finalized
        ).first() is not None

    @staticmethod
    def batch_row(batch: Batch, year: int, period_start: date) -> ReconciliationBatch:
        carried = batch.start_date is not None and batch.start_date.date() <= period_start
        return ReconciliationBatch(
            id=batch.id,
            name=batch.name,
            custom_name=batch.custom_name,
            batch_number=batch.batch_number,
            product_type=batch.product_type.value if batch.product_type else None,
            start_date=batch.start_date,
            initial_volume_l=batch.initial_volume_l or 0.0,
            current_volume_l=batch.current_volume_l or 0.0,
            vessel_name=batch.vessel_name,
            reconciliation_status=batch.reconciliation_status.value,
            verified_for_year=batch.is_verified_for(year),
            category="carried_forward" if carried else "new_production",
            validation=validate_batch(batch, year),
        )

    def compute(self, period_start: date, period_end: date) -> Tuple[List[Batch], Dict[str, BatchReconciliation], ReconciliationTotals]:
        batches = self.eligible_batches(period_end)
        recon = {str(b.id): reconcile_batch(b, period_start, period_end) for b in batches}
        totals = aggregate_totals(list(recon.values()))
        return batches, recon, totals

    def get_reconciliation_summary(self, year: int, period: str = "annual") -> ReconciliationSummary:
        """Batches with validation, per-batch reconciliation and totals for a period"""
        period_start, period_end = get_period_date_range(year, period)
        batches, recon, totals = self.compute(period_start, period_end)

        logger.info(
            f"Reconciliation {period_start}..{period_end}: {len(batches)} batches, "
            f"identity {totals.identity_check} gal"
        )

        finalized = self.finalized_periods()
        return ReconciliationSummary(
            year=year,
            period=period,
            period_label=format_period_label(year, period),
            period_start=period_start,
            period_end=period_end,
            batches=[self.batch_row(b, year, period_start) for b in batches],
            batch_recon=recon,
            totals=totals,
            period_finalized=any(
                p.period_start == period_start and p.period_end == period_end for p in finalized
            ),
            finalized_periods=[FinalizedPeriodResponse.model_validate(p) for p in finalized],
        )

    def form_512017(self, year: int, period: str = "annual") -> Dict:
        """TTB Form 5120.17 Part I (bulk wine) figures in wine gallons"""
        period_start, period_end = get_period_date_range(year, period)
        _, _, totals = self.compute(period_start, period_end)

        received = round_gallons(max(totals.net_internal, 0.0) + max(totals.adjustments, 0.0))
        losses = round_gallons(totals.losses + max(-totals.adjustments, 0.0) + max(-totals.net_internal, 0.0))
        balance = calculate_reconciliation(
            opening=totals.opening + received,
            production=totals.production,
            removals=totals.sales + totals.distillation,
            losses=losses,
            ending=totals.ending,
        )
        return {
            "period_label": format_period_label(year, period),
            "period_type": period_type(period),
            "period_start": period_start,
            "period_end": period_end,
            "opening": totals.opening,
            "produced": totals.production,
            "received": received,
            "removed_taxpaid": totals.sales,
            "used_for_distilling": totals.distillation,
            "losses": losses,
            "ending": totals.ending,
            "total_available": balance["total_available"],
            "total_accounted": balance["total_accounted"],
            "variance": balance["variance"],
            "is_balanced": balance["is_balanced"],
            "tax": calculate_hard_cider_tax(totals.sales),
        }

    def finalize_period(self, year: int, period: str, user_id: Optional[str] = None) -> TTBReportingPeriod:
        """Snapshot totals and lock the period"""
        period_start, period_end = get_period_date_range(year, period)

        existing = self.db.query(TTBReportingPeriod).filter(
            TTBReportingPeriod.period_start == period_start,
            TTBReportingPeriod.period_end == period_end
        ).first()
        if existing and existing.status == PeriodStatus.finalized:
            raise PeriodFinalizedError(
                f"Period {period_start}..{period_end} already finalized",
                user_message=f"{format_period_label(year, period)} is already finalized",
                context={"period_start": str(period_start), "period_end": str(period_end)}
            )

        _, _, totals = self.compute(period_start, period_end)
        record = existing or TTBReportingPeriod(
            period_type=period_type(period),
            period_start=period_start,
            period_end=period_end,
        )
        record.status = PeriodStatus.finalized
        record.opening_gallons = totals.opening
        record.production_gallons = totals.production
        record.losses_gallons = totals.losses
        record.sales_gallons = totals.sales
        record.distillation_gallons = totals.distillation
        record.ending_gallons = totals.ending
        record.identity_check_gallons = totals.identity_check
        record.tax_due = calculate_hard_cider_tax(totals.sales)["net_tax_due"]
        record.finalized_at = datetime.utcnow()
        record.finalized_by = uuid.UUID(user_id) if user_id else None

        if not existing:
            self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Finalized TTB period {period_start}..{period_end} (ending {totals.ending} gal)")
        return record

    def reopen_period(self, year: int, period: str) -> TTBReportingPeriod:
        """Return a finalized period to draft so statuses in it can change again"""
        period_start, period_end = get_period_date_range(year, period)
        record = self.db.query(TTBReportingPeriod).filter(
            TTBReportingPeriod.period_start == period_start,
            TTBReportingPeriod.period_end == period_end
        ).first()
        if not record or record.status != PeriodStatus.finalized:
            raise ReconciliationError(
                f"Period {period_start}..{period_end} is not finalized",
                user_message=f"{format_period_label(year, period)} is not finalized",
                context={"period_start": str(period_start), "period_end": str(period_end)}
            )

        record.status = PeriodStatus.draft
        record.finalized_at = None
        record.finalized_by = None
        self.db.commit()
        self.db.refresh(record)

        logger.warning(f"Reopened TTB period {period_start}..{period_end}")
        return record
