"""
Batch Ledger
Flattens a batch's ledger tables into dated volume movements
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from ciderhouse.models import Batch, LossKind, PackagingKind

TRANSFER_CREATED_RATIO = 0.9

# Movement categories
TRANSFER_IN = "transfer_in"
TRANSFER_OUT = "transfer_out"
TRANSFER_LOSS = "transfer_loss"
MERGE_IN = "merge_in"
MERGE_OUT = "merge_out"
BOTTLING = "bottling"
BOTTLING_LOSS = "bottling_loss"
KEGGING = "kegging"
KEGGING_LOSS = "kegging_loss"
ADJUSTMENT = "adjustment"
RACKING_LOSS = "racking_loss"
FILTER_LOSS = "filter_loss"
DISTILLATION = "distillation"

INFLOW_CATEGORIES = {TRANSFER_IN, MERGE_IN}
INTERNAL_OUT_CATEGORIES = {TRANSFER_OUT, MERGE_OUT}
SALES_CATEGORIES = {BOTTLING, KEGGING}
LOSS_CATEGORIES = {TRANSFER_LOSS, BOTTLING_LOSS, KEGGING_LOSS, RACKING_LOSS, FILTER_LOSS}
OUTFLOW_CATEGORIES = INTERNAL_OUT_CATEGORIES | SALES_CATEGORIES | LOSS_CATEGORIES | {DISTILLATION}


@dataclass
class Movement:
    """Signed liter movement on a batch"""
    when: datetime
    category: str
    liters: float

    @property
    def day(self) -> date:
        return self.when.date()


def _as_day(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


class BatchLedger:
    """Read-only view of a batch's volume history"""

    def __init__(self, batch: Batch):
        self.batch = batch
        self.movements = self._collect(batch)

    @staticmethod
    def _collect(batch: Batch) -> List[Movement]:
        movements: List[Movement] = []

        for t in batch.transfers_in:
            movements.append(Movement(t.transferred_at, TRANSFER_IN, t.volume_l))
        for t in batch.transfers_out:
            movements.append(Movement(t.transferred_at, TRANSFER_OUT, -t.volume_l))
            if t.loss_l:
                movements.append(Movement(t.transferred_at, TRANSFER_LOSS, -t.loss_l))

        for m in batch.merges_in:
            movements.append(Movement(m.merged_at, MERGE_IN, m.volume_l))
        for m in batch.merges_out:
            movements.append(Movement(m.merged_at, MERGE_OUT, -m.volume_l))

        for run in batch.packaging_runs:
            if run.kind == PackagingKind.bottling:
                taken, loss = BOTTLING, BOTTLING_LOSS
            else:
                taken, loss = KEGGING, KEGGING_LOSS
            movements.append(Movement(run.packaged_at, taken, -run.volume_taken_l))
            if run.effective_loss_l:
                movements.append(Movement(run.packaged_at, loss, -run.effective_loss_l))

        for adj in batch.adjustments:
            movements.append(Movement(adj.adjusted_at, ADJUSTMENT, adj.adjustment_l))

        for loss in batch.losses:
            if loss.is_historical_record:
                continue
            category = RACKING_LOSS if loss.kind == LossKind.racking else FILTER_LOSS
            movements.append(Movement(loss.occurred_at, category, -loss.volume_loss_l))

        for d in batch.distillations:
            movements.append(Movement(d.sent_at, DISTILLATION, -d.volume_l))

        movements.sort(key=lambda m: m.when)
        return movements

    @property
    def start_day(self) -> Optional[date]:
        return _as_day(self.batch.start_date)

    @property
    def transfers_in_total(self) -> float:
        return self.total(TRANSFER_IN)

    @property
    def is_transfer_created(self) -> bool:
        """Child batch whose initial volume is the liquid transferred into it"""
        initial = self.batch.initial_volume_l or 0.0
        if self.batch.parent_batch_id is None or initial <= 0:
            return False
        return self.transfers_in_total >= initial * TRANSFER_CREATED_RATIO

    @property
    def effective_initial_l(self) -> float:
        """Initial volume that counts as production (0 for transfer-created batches)"""
        if self.is_transfer_created:
            return 0.0
        return self.batch.initial_volume_l or 0.0

    def total(self, *categories: str, since: Optional[date] = None, until: Optional[date] = None) -> float:
        """Sum of signed liters for categories with since < day <= until"""
        return sum(
            m.liters for m in self._between(since, until)
            if not categories or m.category in categories
        )

    def _between(self, since: Optional[date], until: Optional[date]) -> Iterable[Movement]:
        for m in self.movements:
            if since is not None and m.day <= since:
                continue
            if until is not None and m.day > until:
                continue
            yield m

    def totals_by_category(self, since: Optional[date] = None, until: Optional[date] = None) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for m in self._between(since, until):
            totals[m.category] = totals.get(m.category, 0.0) + m.liters
        return totals

    def has_outflows(self) -> bool:
        return any(m.category in OUTFLOW_CATEGORIES for m in self.movements)

    def volume_as_of(self, day: Optional[date] = None) -> float:
        """Unclamped reconstructed volume at end of day (full history when day is None)"""
        start = self.start_day
        volume = 0.0
        if day is None or (start is not None and start <= day):
            volume += self.effective_initial_l
        return volume + self.total(until=day)

    def reconstructed_volume_l(self) -> float:
        return self.volume_as_of(None)
