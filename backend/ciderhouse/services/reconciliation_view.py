"""
Reconciliation View
Filter/sort state for the batch reconciliation table and the auto-verify trigger
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence
import logging

from ciderhouse.core.units import liters_to_wine_gallons
from ciderhouse.schemas.ttb import (
    BatchReconciliation,
    ReconciliationBatch,
    ReconciliationRow,
    ReconciliationTotals,
)
from ciderhouse.services.ttb_calculations import (
    DRIFT_TOLERANCE_L,
    IDENTITY_TOLERANCE_GAL,
    check_badge,
    is_drift_issue,
    is_identity_issue,
)

logger = logging.getLogger(__name__)

VALIDATION_FILTERS = ["pass", "warning", "fail", "verified", "carried_forward", "new_production"]
TTB_FILTERS = ["identity", "drift", "initial_anomaly", "capacity"]
SORT_FIELDS = [
    "name",
    "product_type",
    "start_date",
    "initial_volume",
    "ending_volume",
    "gallons",
    "vessel_name",
    "validation",
    "reconciliation_status",
]

VALIDATION_RANK = {"fail": 0, "warning": 1, "pass": 2, "verified": 3}
RECONCILIATION_STATUS_RANK = {"pending": 0, "verified": 1, "duplicate": 2, "excluded": 3}
PRODUCT_TYPES = ["cider", "perry", "brandy", "pommeau", "juice", "other"]


def validation_rank(batch: ReconciliationBatch) -> int:
    if batch.verified_for_year:
        return VALIDATION_RANK["verified"]
    status = batch.validation.status if batch.validation else "pass"
    return VALIDATION_RANK.get(status, VALIDATION_RANK["pass"])


def matches_validation_filter(batch: ReconciliationBatch, value: Optional[str]) -> bool:
    if not value:
        return True
    if value == "verified":
        return batch.verified_for_year
    if value in ("carried_forward", "new_production"):
        return batch.category == value
    status = batch.validation.status if batch.validation else None
    return status == value


def matches_ttb_filter(recon: Optional[BatchReconciliation], value: Optional[str]) -> bool:
    if not value:
        return True
    if recon is None:
        return False
    if value == "identity":
        return is_identity_issue(recon.identity_check)
    if value == "drift":
        return is_drift_issue(recon.drift_liters)
    if value == "initial_anomaly":
        return recon.has_initial_volume_anomaly
    if value == "capacity":
        return recon.exceeds_vessel_capacity
    return True


def status_label(batch: ReconciliationBatch, recon: Optional[BatchReconciliation] = None) -> str:
    """Label on the status menu button"""
    validation = batch.validation
    if batch.verified_for_year:
        if recon is not None and is_drift_issue(recon.drift_liters):
            return "Verified (drift)"
        if validation is not None and validation.status == "warning":
            return "Verified (override)"
        return "Verified"

    if validation is None or validation.status == "pass":
        return "Passing"
    if validation.status == "warning":
        n = validation.warning_count
        return f"{n} warning" if n == 1 else f"{n} warnings"
    n = validation.issue_count
    return f"{n} issue" if n == 1 else f"{n} issues"


def status_actions(batch: ReconciliationBatch) -> List[str]:
    """Reconciliation actions offered for a batch"""
    if batch.verified_for_year:
        return ["reset"]
    actions = []
    if batch.validation is not None and batch.validation.status == "warning":
        actions.append("force_verify")
    actions.extend(["exclude", "duplicate", "reset"])
    return actions


def _min_datetime(value: Optional[datetime]) -> datetime:
    return value or datetime.min


class ReconciliationView:
    """
    State container for one reconciliation table.

    Filters and sort change only through the action methods; rows() derives
    the rendered list from the loaded data and the current state.
    """

    def __init__(
        self,
        batches: Sequence[ReconciliationBatch] = (),
        batch_recon: Optional[Mapping[str, BatchReconciliation]] = None
    ):
        self.batches = list(batches)
        self.batch_recon = dict(batch_recon or {})
        self.product_type_filter: Optional[str] = None
        self.status_filter: Optional[str] = None
        self.search = ""
        self.validation_filter: Optional[str] = None
        self.ttb_filter: Optional[str] = None
        self.sort_field = "start_date"
        self.sort_direction = "asc"

    # Actions

    def load(self, batches: Sequence[ReconciliationBatch], batch_recon: Mapping[str, BatchReconciliation]) -> None:
        self.batches = list(batches)
        self.batch_recon = dict(batch_recon)

    def set_product_type_filter(self, value: Optional[str]) -> None:
        if value in (None, "all"):
            self.product_type_filter = None
            return
        if value not in PRODUCT_TYPES:
            raise ValueError(f"Unknown product type: {value}")
        self.product_type_filter = value

    def set_status_filter(self, value: Optional[str]) -> None:
        """Reconciliation status; 'all' or None clears it"""
        if value in (None, "all"):
            self.status_filter = None
            return
        if value not in RECONCILIATION_STATUS_RANK:
            raise ValueError(f"Unknown reconciliation status: {value}")
        self.status_filter = value

    def set_search(self, text: Optional[str]) -> None:
        self.search = (text or "").strip()

    def set_sort(self, field: str, direction: str = "asc") -> None:
        """Jump straight to a sort state, as restored from a URL"""
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unknown sort direction: {direction}")
        if self.sort_field != field:
            self.sort_by(field)
        if self.sort_direction != direction:
            self.sort_by(field)

    def toggle_validation_filter(self, value: str) -> None:
        """Select a validation chip; selecting the active chip clears it"""
        if value not in VALIDATION_FILTERS:
            raise ValueError(f"Unknown validation filter: {value}")
        self.validation_filter = None if self.validation_filter == value else value

    def set_ttb_filter(self, value: Optional[str]) -> None:
        """Select a TTB issue chip; 'all' or None clears it"""
        if value in (None, "all"):
            self.ttb_filter = None
            return
        if value not in TTB_FILTERS:
            raise ValueError(f"Unknown TTB filter: {value}")
        self.ttb_filter = value

    def sort_by(self, field: str) -> None:
        """Same field flips direction, a new field starts ascending"""
        if field not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {field}")
        if self.sort_field == field:
            self.sort_direction = "desc" if self.sort_direction == "asc" else "asc"
        else:
            self.sort_field = field
            self.sort_direction = "asc"

    # Derived

    def recon_for(self, batch: ReconciliationBatch) -> Optional[BatchReconciliation]:
        return self.batch_recon.get(str(batch.id))

    def _sort_key(self, field: str) -> Callable:
        def ending_liters(b: ReconciliationBatch) -> float:
            recon = self.recon_for(b)
            return recon.reconstructed_ending_l if recon else b.current_volume_l

        def gallons(b: ReconciliationBatch) -> float:
            recon = self.recon_for(b)
            return recon.ending_gal if recon else liters_to_wine_gallons(b.current_volume_l)

        keys = {
            "name": lambda b: b.display_name.lower(),
            "product_type": lambda b: b.product_type or "",
            "start_date": lambda b: _min_datetime(b.start_date),
            "initial_volume": lambda b: b.initial_volume_l,
            "ending_volume": ending_liters,
            "gallons": gallons,
            "vessel_name": lambda b: (b.vessel_name or "").lower(),
            "validation": validation_rank,
            "reconciliation_status": lambda b: RECONCILIATION_STATUS_RANK.get(b.reconciliation_status, 0),
        }
        return keys[field]

    def _matches_scope(self, batch: ReconciliationBatch) -> bool:
        if self.product_type_filter and batch.product_type != self.product_type_filter:
            return False
        if self.status_filter and batch.reconciliation_status != self.status_filter:
            return False
        if self.search:
            needle = self.search.lower()
            return needle in batch.name.lower() or needle in (batch.custom_name or "").lower()
        return True

    def scoped(self) -> List[ReconciliationBatch]:
        """Batches matching product type, status and search; the chips count within this set"""
        return [b for b in self.batches if self._matches_scope(b)]

    def filtered(self) -> List[ReconciliationBatch]:
        return [
            b for b in self.scoped()
            if matches_validation_filter(b, self.validation_filter)
            and matches_ttb_filter(self.recon_for(b), self.ttb_filter)
        ]

    def sorted_batches(self) -> List[ReconciliationBatch]:
        return sorted(self.filtered(), key=self._sort_key(self.sort_field), reverse=self.sort_direction == "desc")

    def rows(self) -> List[ReconciliationRow]:
        rows = []
        for batch in self.sorted_batches():
            recon = self.recon_for(batch)
            rows.append(ReconciliationRow(
                batch=batch,
                reconciliation=recon,
                status_label=status_label(batch, recon),
                actions=status_actions(batch),
                identity_badge=check_badge(recon.identity_check, IDENTITY_TOLERANCE_GAL) if recon else None,
                drift_badge=check_badge(recon.drift_liters, DRIFT_TOLERANCE_L) if recon else None,
            ))
        return rows

    def summary_counts(self) -> Dict[str, int]:
        """Batch count per filter chip, ignoring the chip selections themselves"""
        batches = self.scoped()
        counts = {"all": len(batches)}
        for value in VALIDATION_FILTERS:
            counts[value] = sum(1 for b in batches if matches_validation_filter(b, value))
        for value in TTB_FILTERS:
            counts[value] = sum(1 for b in batches if matches_ttb_filter(self.recon_for(b), value))
        return counts


@dataclass
class AutoVerifyDecision:
    fired: bool
    key: Optional[str] = None
    reason: Optional[str] = None
    batch_ids: Optional[List[str]] = None


def auto_verify_key(period_start: date, period_end: date, batch_ids: Sequence) -> str:
    return f"{period_start}-{period_end}-{','.join(sorted(str(i) for i in batch_ids))}"


class AutoVerifier:
    """
    Verifies passing batches automatically, at most once per
    (period, eligible batch set).

    Only fires when the whole period reconciles: aggregate identity inside
    tolerance, no drift, anomaly or capacity issues, and the period is open.
    """

    def __init__(self):
        self.last_key: Optional[str] = None

    @staticmethod
    def eligible_batch_ids(batches: Sequence[ReconciliationBatch]) -> List[str]:
        return [
            str(b.id) for b in batches
            if not b.verified_for_year and b.validation is not None and b.validation.status == "pass"
        ]

    def maybe_verify(
        self,
        period_start: date,
        period_end: date,
        batches: Sequence[ReconciliationBatch],
        batch_recon: Optional[Mapping[str, BatchReconciliation]],
        totals: Optional[ReconciliationTotals],
        period_finalized: bool,
        verify: Callable[[List[str], bool, int], object]
    ) -> AutoVerifyDecision:
        if not batch_recon or totals is None or not batches:
            return AutoVerifyDecision(False, reason="no reconciliation data")
        if is_identity_issue(totals.identity_check):
            return AutoVerifyDecision(False, reason="aggregate identity check failed")
        if totals.batches_with_drift or totals.batches_with_initial_anomaly or totals.vessel_capacity_warnings:
            return AutoVerifyDecision(False, reason="batch-level reconciliation issues")
        if period_finalized:
            return AutoVerifyDecision(False, reason="period finalized")

        batch_ids = self.eligible_batch_ids(batches)
        if not batch_ids:
            return AutoVerifyDecision(False, reason="no eligible batches")

        key = auto_verify_key(period_start, period_end, batch_ids)
        if key == self.last_key:
            return AutoVerifyDecision(False, key=key, reason="already verified for this set")

        self.last_key = key
        logger.info(f"Auto-verifying {len(batch_ids)} batches for {period_start}..{period_end}")
        verify(batch_ids, False, period_end.year)
        return AutoVerifyDecision(True, key=key, batch_ids=batch_ids)
