"""
Vessel Service
Vessel lifecycle and the cellar liquid map
"""

from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload
from typing import List
import logging
import uuid

from ciderhouse.core.errors import NotFoundError, VesselStateValidationError
from ciderhouse.core.units import to_liters
from ciderhouse.models import Vessel, VesselMaterial, VesselStatus, ToastLevel
from ciderhouse.schemas.vessel import LiquidMapEntry, VesselCreate, VesselFields, VesselUpdate

logger = logging.getLogger(__name__)

MATERIAL_FIELDS = (
    "material",
    "jacketed",
    "is_pressure_vessel",
    "is_barrel",
    "barrel_origin_type_id",
    "toast_level",
    "year_acquired",
)


class VesselService:
    """Create, update, status and delete rules for vessels"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, vessel_id: uuid.UUID) -> Vessel:
        vessel = self.db.query(Vessel).filter(Vessel.id == vessel_id).first()
        if not vessel:
            raise NotFoundError(
                f"Vessel {vessel_id} not found",
                user_message="Vessel not found",
                context={"vessel_id": str(vessel_id)}
            )
        return vessel

    def _ensure_unique_name(self, name: str, exclude_id=None) -> None:
        query = self.db.query(Vessel.id).filter(Vessel.name == name)
        if exclude_id is not None:
            query = query.filter(Vessel.id != exclude_id)
        if query.first():
            raise VesselStateValidationError(
                f"Vessel name {name} already exists",
                user_message=f"A vessel named {name} already exists",
                context={"name": name}
            )

    def create(self, data: VesselCreate) -> Vessel:
        self._ensure_unique_name(data.name)

        capacity_l = round(to_liters(data.capacity, data.capacity_unit), 3)
        working_l = None
        if data.working_capacity is not None:
            working_l = round(to_liters(data.working_capacity, data.capacity_unit), 3)

        vessel = Vessel(
            name=data.name,
            capacity=data.capacity,
            capacity_unit=data.capacity_unit,
            capacity_l=capacity_l,
            working_capacity_l=working_l,
            material=VesselMaterial(data.material),
            jacketed=bool(data.jacketed),
            is_pressure_vessel=bool(data.is_pressure_vessel),
            is_barrel=bool(data.is_barrel) or data.material == VesselMaterial.wood.value,
            barrel_origin_type_id=data.barrel_origin_type_id,
            toast_level=ToastLevel(data.toast_level) if data.toast_level else None,
            year_acquired=data.year_acquired,
            location=data.location,
            notes=data.notes,
        )
        self.db.add(vessel)
        self.db.commit()
        self.db.refresh(vessel)

        logger.info(f"Created vessel {vessel.name} ({vessel.capacity_l:.1f} L)")
        return vessel

    def update(self, vessel_id: uuid.UUID, data: VesselUpdate) -> Vessel:
        vessel = self.get(vessel_id)
        updates = data.model_dump(exclude_unset=True)

        # Material rules apply to the merged state, not just the patch
        merged = {
            key: getattr(vessel, key).value if hasattr(getattr(vessel, key), "value") else getattr(vessel, key)
            for key in MATERIAL_FIELDS
        }
        merged.update({k: v for k, v in updates.items() if k in MATERIAL_FIELDS})
        try:
            VesselFields(**merged)
        except ValidationError as e:
            message = e.errors()[0]["msg"].replace("Value error, ", "")
            raise VesselStateValidationError(
                f"Invalid vessel update: {message}",
                user_message=message,
                context={"vessel_id": str(vessel.id)}
            )

        if "name" in updates and updates["name"]:
            self._ensure_unique_name(updates["name"], exclude_id=vessel.id)
            vessel.name = updates["name"]

        unit = updates.get("capacity_unit") or vessel.capacity_unit
        if updates.get("capacity") is not None or "capacity_unit" in updates:
            vessel.capacity = updates.get("capacity") or vessel.capacity
            vessel.capacity_unit = unit
            vessel.capacity_l = round(to_liters(vessel.capacity, unit), 3)
        if "working_capacity" in updates:
            working = updates["working_capacity"]
            vessel.working_capacity_l = round(to_liters(working, unit), 3) if working is not None else None
        if vessel.working_capacity_l is not None and vessel.working_capacity_l > vessel.capacity_l:
            raise VesselStateValidationError(
                "Working capacity exceeds maximum capacity",
                user_message="Working capacity cannot exceed maximum capacity",
                context={"working_capacity_l": vessel.working_capacity_l, "capacity_l": vessel.capacity_l}
            )

        if "material" in updates and updates["material"]:
            vessel.material = VesselMaterial(updates["material"])
        for key in ("jacketed", "is_pressure_vessel", "is_barrel"):
            if updates.get(key) is not None:
                setattr(vessel, key, updates[key])
        if "barrel_origin_type_id" in updates:
            vessel.barrel_origin_type_id = updates["barrel_origin_type_id"]
        if "toast_level" in updates:
            vessel.toast_level = ToastLevel(updates["toast_level"]) if updates["toast_level"] else None
        for key in ("year_acquired", "location", "notes"):
            if key in updates:
                setattr(vessel, key, updates[key])

        self.db.commit()
        self.db.refresh(vessel)
        return vessel

    def set_status(self, vessel_id: uuid.UUID, status: str) -> Vessel:
        vessel = self.get(vessel_id)
        new_status = VesselStatus(status)
        vessel.status = new_status
        self.db.commit()
        self.db.refresh(vessel)
        logger.info(f"Vessel {vessel.name} set to {new_status.value}")
        return vessel

    def delete(self, vessel_id: uuid.UUID) -> None:
        vessel = self.get(vessel_id)
        if vessel.active_batch is not None:
            raise VesselStateValidationError(
                f"Cannot delete vessel {vessel.name} with an active batch",
                user_message=f"{vessel.name} still holds {vessel.active_batch.display_name}",
                context={"vessel_id": str(vessel.id), "batch_id": str(vessel.active_batch.id)}
            )
        self.db.delete(vessel)
        self.db.commit()
        logger.info(f"Deleted vessel {vessel_id}")

    def liquid_map(self) -> List[LiquidMapEntry]:
        """Every vessel with what it currently holds"""
        vessels = (
            self.db.query(Vessel)
            .options(selectinload(Vessel.batches))
            .order_by(Vessel.name)
            .all()
        )
        entries = []
        for vessel in vessels:
            batch = vessel.active_batch
            volume_l = vessel.current_volume_l
            fill = (volume_l / vessel.capacity_l * 100) if vessel.capacity_l else 0.0
            entries.append(LiquidMapEntry(
                vessel_id=vessel.id,
                vessel_name=vessel.name,
                status=vessel.status.value,
                material=vessel.material.value,
                capacity_l=vessel.capacity_l,
                working_capacity_l=vessel.working_capacity_l,
                current_volume_l=round(volume_l, 3),
                fill_percent=round(fill, 1),
                has_liquid=volume_l > 0,
                batch_id=batch.id if batch else None,
                batch_name=batch.display_name if batch else None,
                product_type=batch.product_type.value if batch and batch.product_type else None,
            ))
        return entries
