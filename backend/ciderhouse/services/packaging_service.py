"""
Packaging Service
Bottling and kegging runs drawn from batches
"""

from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Optional
import logging
import uuid

from ciderhouse.core.errors import NotFoundError, QuantityValidationError
from ciderhouse.core.units import to_liters
from ciderhouse.models import Batch, PackagingKind, PackagingRun
from ciderhouse.schemas.inventory import PackagingRunCreate

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "packaged_at": PackagingRun.packaged_at,
    "volume": PackagingRun.volume_taken_l,
}


def run_to_dict(run: PackagingRun) -> Dict:
    return {
        "id": run.id,
        "batch_id": run.batch_id,
        "batch_name": run.batch.display_name if run.batch else None,
        "kind": run.kind.value,
        "volume_taken_l": run.volume_taken_l,
        "loss_l": run.loss_l,
        "units_produced": run.units_produced,
        "package_size_ml": run.package_size_ml,
        "packaged_at": run.packaged_at,
        "notes": run.notes,
    }


class PackagingService:
    """Record and list packaging runs"""

    def __init__(self, db: Session):
        self.db = db

    def record_run(self, data: PackagingRunCreate) -> PackagingRun:
        batch = self.db.query(Batch).filter(Batch.id == data.batch_id, Batch.deleted_at.is_(None)).first()
        if not batch:
            raise NotFoundError(f"Batch {data.batch_id} not found", context={"batch_id": str(data.batch_id)})
        if not batch.is_active:
            raise QuantityValidationError(
                f"Batch {batch.name} is {batch.status.value}",
                user_message=f"{batch.display_name} is {batch.status.value} and cannot be packaged",
                context={"batch_id": str(batch.id)}
            )

        run = PackagingRun(
            batch_id=batch.id,
            kind=PackagingKind(data.kind),
            volume_taken_l=round(to_liters(data.volume_taken, data.unit), 3),
            loss_l=round(to_liters(data.loss, data.unit), 3),
            units_produced=data.units_produced,
            package_size_ml=data.package_size_ml,
            packaged_at=data.packaged_at or datetime.utcnow(),
            notes=data.notes,
        )
        drawn_l = run.volume_taken_l + run.effective_loss_l
        if drawn_l > (batch.current_volume_l or 0.0) + 0.2:
            raise QuantityValidationError(
                f"Packaging draws {drawn_l:.2f} L but batch holds {batch.current_volume_l:.2f} L",
                user_message=f"Packaging volume exceeds what {batch.display_name} holds",
                context={"drawn_l": drawn_l, "current_volume_l": batch.current_volume_l}
            )

        batch.current_volume_l = max((batch.current_volume_l or 0.0) - drawn_l, 0.0)
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)

        logger.info(f"{run.kind.value.capitalize()} run on {batch.name}: {run.volume_taken_l:.1f} L, {run.units_produced} units")
        return run

    def list_runs(
        self,
        kind: Optional[str] = None,
        batch_id: Optional[uuid.UUID] = None,
        sort_by: str = "packaged_at",
        sort_order: str = "desc",
        limit: int = 50,
        offset: int = 0
    ) -> Dict:
        query = self.db.query(PackagingRun)
        if kind:
            query = query.filter(PackagingRun.kind == PackagingKind(kind))
        if batch_id:
            query = query.filter(PackagingRun.batch_id == batch_id)

        column = SORT_COLUMNS[sort_by]
        total = query.count()
        runs = (
            query.order_by(column.desc() if sort_order == "desc" else column.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"items": [run_to_dict(r) for r in runs], "total": total, "limit": limit, "offset": offset}
