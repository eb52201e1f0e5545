"""
Batch Service
Batch lifecycle plus lab measurements and additives
"""

from sqlalchemy import or_
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Optional
import logging
import uuid

from ciderhouse.core.errors import NotFoundError, VesselStateValidationError
from ciderhouse.core.units import fahrenheit_to_celsius, to_liters
from ciderhouse.models import (
    Batch,
    BatchAdditive,
    BatchMeasurement,
    BatchStatus,
    CLOSED_BATCH_STATUSES,
    ProductType,
    Vessel,
)
from ciderhouse.schemas.batch import AdditiveCreate, BatchCreate, BatchUpdate, MeasurementCreate

logger = logging.getLogger(__name__)


class BatchService:
    """Batch CRUD; ledger rows are written by the transfer and packaging flows"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, batch_id: uuid.UUID, include_deleted: bool = False) -> Batch:
        batch = self.db.query(Batch).filter(Batch.id == batch_id).first()
        if not batch or (batch.is_deleted and not include_deleted):
            raise NotFoundError(
                f"Batch {batch_id} not found",
                user_message="Batch not found",
                context={"batch_id": str(batch_id)}
            )
        return batch

    def _check_vessel(self, vessel_id: uuid.UUID, exclude_batch_id=None) -> Vessel:
        vessel = self.db.query(Vessel).filter(Vessel.id == vessel_id).first()
        if not vessel:
            raise NotFoundError(f"Vessel {vessel_id} not found", context={"vessel_id": str(vessel_id)})
        occupant = vessel.active_batch
        if occupant is not None and occupant.id != exclude_batch_id:
            raise VesselStateValidationError(
                f"Vessel {vessel.name} already holds batch {occupant.name}",
                user_message=f"{vessel.name} already holds {occupant.display_name}",
                context={"vessel_id": str(vessel.id), "batch_id": str(occupant.id)}
            )
        return vessel

    def create(self, data: BatchCreate) -> Batch:
        if data.vessel_id:
            self._check_vessel(data.vessel_id)
        if data.parent_batch_id:
            self.get(data.parent_batch_id)

        volume_l = round(to_liters(data.initial_volume, data.unit), 3)
        batch = Batch(
            name=data.name,
            custom_name=data.custom_name,
            batch_number=data.batch_number,
            vessel_id=data.vessel_id,
            parent_batch_id=data.parent_batch_id,
            product_type=ProductType(data.product_type),
            status=BatchStatus(data.status),
            initial_volume_l=volume_l,
            current_volume_l=volume_l,
            start_date=data.start_date,
            notes=data.notes,
        )
        self.db.add(batch)
        self.db.commit()
        self.db.refresh(batch)

        logger.info(f"Created batch {batch.name} with {volume_l:.1f} L")
        return batch

    def update(self, batch_id: uuid.UUID, data: BatchUpdate) -> Batch:
        batch = self.get(batch_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("vessel_id") and updates["vessel_id"] != batch.vessel_id:
            self._check_vessel(updates["vessel_id"], exclude_batch_id=batch.id)
        if updates.get("product_type"):
            updates["product_type"] = ProductType(updates["product_type"])
        if updates.get("status"):
            updates["status"] = BatchStatus(updates["status"])
            if updates["status"] in CLOSED_BATCH_STATUSES and not batch.end_date and "end_date" not in updates:
                updates["end_date"] = datetime.utcnow()

        for key, value in updates.items():
            if key == "name" and not value:
                continue
            setattr(batch, key, value)

        self.db.commit()
        self.db.refresh(batch)
        return batch

    def delete(self, batch_id: uuid.UUID) -> None:
        """Soft delete; ledger rows stay immutable"""
        batch = self.get(batch_id)
        batch.deleted_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"Soft-deleted batch {batch.name}")

    def list(
        self,
        status: Optional[str] = None,
        vessel_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        include_deleted: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> Dict:
        query = self.db.query(Batch)
        if not include_deleted:
            query = query.filter(Batch.deleted_at.is_(None))
        if status:
            query = query.filter(Batch.status == BatchStatus(status))
        if vessel_id:
            query = query.filter(Batch.vessel_id == vessel_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Batch.name.ilike(pattern),
                Batch.custom_name.ilike(pattern),
                Batch.batch_number.ilike(pattern),
            ))

        total = query.count()
        items = query.order_by(Batch.start_date.desc()).offset(offset).limit(limit).all()
        return {"items": items, "total": total, "limit": limit, "offset": offset}

    def add_measurement(self, batch_id: uuid.UUID, data: MeasurementCreate) -> BatchMeasurement:
        batch = self.get(batch_id)
        temperature_c = data.temperature
        if temperature_c is not None and data.temperature_unit == "F":
            temperature_c = round(fahrenheit_to_celsius(temperature_c), 2)

        measurement = BatchMeasurement(
            batch_id=batch.id,
            measured_at=data.measured_at or datetime.utcnow(),
            specific_gravity=data.specific_gravity,
            abv=data.abv,
            ph=data.ph,
            temperature_c=temperature_c,
            notes=data.notes,
        )
        if data.abv is not None:
            batch.actual_abv = data.abv
        self.db.add(measurement)
        self.db.commit()
        self.db.refresh(measurement)
        return measurement

    def add_additive(self, batch_id: uuid.UUID, data: AdditiveCreate) -> BatchAdditive:
        batch = self.get(batch_id)
        additive = BatchAdditive(
            batch_id=batch.id,
            additive_name=data.additive_name,
            amount=data.amount,
            unit=data.unit,
            added_at=data.added_at or datetime.utcnow(),
            notes=data.notes,
        )
        self.db.add(additive)
        self.db.commit()
        self.db.refresh(additive)
        return additive
