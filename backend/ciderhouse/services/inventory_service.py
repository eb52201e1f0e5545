"""
Inventory Service
Normalizes per-material transactions and calculates on-hand inventory
"""

from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging

from ciderhouse.core.errors import QuantityValidationError
from ciderhouse.core.units import bushels_to_kg, convert_volume, convert_weight
from ciderhouse.models import InventoryItem, InventoryTransaction, MaterialType, TransactionType
from ciderhouse.schemas.inventory import NormalizedTransaction

logger = logging.getLogger(__name__)

ADDITIVE_MASS_UNITS = {"g", "kg", "lb", "oz"}
ADDITIVE_VOLUME_UNITS = {"mL", "L"}


def _normalize_quantity(material_type: str, quantity: float, unit: str) -> Tuple[float, str]:
    """Quantity in the material's base unit"""
    if material_type == MaterialType.apple.value:
        if unit == "bushel":
            return bushels_to_kg(quantity), "kg"
        return convert_weight(quantity, unit, "kg"), "kg"

    if material_type == MaterialType.juice.value:
        return convert_volume(quantity, unit, "L"), "L"

    if material_type == MaterialType.additive.value:
        if unit in ADDITIVE_MASS_UNITS:
            return convert_weight(quantity, unit, "g"), "g"
        if unit in ADDITIVE_VOLUME_UNITS:
            return convert_volume(quantity, unit, "mL"), "mL"

    if material_type == MaterialType.packaging.value and unit == "units":
        return quantity, "units"

    raise QuantityValidationError(
        f"Unit {unit} is not valid for {material_type}",
        context={"material_type": material_type, "unit": unit}
    )


def normalize_transaction(payload) -> NormalizedTransaction:
    """Reduce any material form payload to the common transaction shape"""
    quantity_normalized, normalized_unit = _normalize_quantity(
        payload.material_type, payload.quantity, payload.unit
    )

    if payload.transaction_type == TransactionType.usage.value:
        quantity_normalized = -quantity_normalized
    elif payload.transaction_type == TransactionType.adjustment.value and payload.adjustment_direction == "decrease":
        quantity_normalized = -quantity_normalized

    return NormalizedTransaction(
        material_type=payload.material_type,
        item_name=payload.item_name.strip(),
        transaction_type=payload.transaction_type,
        quantity=payload.quantity,
        unit=payload.unit,
        quantity_normalized=quantity_normalized,
        normalized_unit=normalized_unit,
        occurred_at=payload.occurred_at or datetime.utcnow(),
        unit_cost=payload.unit_cost,
        reference=payload.reference,
        notes=payload.notes,
    )


def transaction_to_dict(txn: InventoryTransaction) -> Dict:
    return {
        "id": txn.id,
        "item_id": txn.item_id,
        "item_name": txn.item.name,
        "material_type": txn.item.material_type.value,
        "transaction_type": txn.transaction_type.value,
        "quantity": txn.quantity,
        "unit": txn.unit,
        "quantity_normalized": txn.quantity_normalized,
        "normalized_unit": txn.item.base_unit,
        "unit_cost": txn.unit_cost,
        "occurred_at": txn.occurred_at,
        "reference": txn.reference,
        "notes": txn.notes,
    }


class InventoryService:
    """Inventory transactions and on-hand calculations"""

    def __init__(self, db: Session):
        self.db = db

    def _get_or_create_item(self, normalized: NormalizedTransaction) -> InventoryItem:
        material_type = MaterialType(normalized.material_type)
        item = self.db.query(InventoryItem).filter(
            InventoryItem.material_type == material_type,
            InventoryItem.name == normalized.item_name
        ).first()

        if item is None:
            item = InventoryItem(
                material_type=material_type,
                name=normalized.item_name,
                base_unit=normalized.normalized_unit,
            )
            self.db.add(item)
            self.db.flush()
        elif item.base_unit != normalized.normalized_unit:
            raise QuantityValidationError(
                f"{item.name} is tracked in {item.base_unit}, got {normalized.normalized_unit}",
                user_message=f"{item.name} is tracked in {item.base_unit}; use a compatible unit",
                context={"item_id": str(item.id), "base_unit": item.base_unit}
            )
        return item

    def record_transaction(self, payload) -> InventoryTransaction:
        normalized = normalize_transaction(payload)
        item = self._get_or_create_item(normalized)

        if normalized.quantity_normalized < 0 and item.on_hand + normalized.quantity_normalized < 0:
            logger.warning(
                f"{item.name} on hand goes negative: {item.on_hand} + {normalized.quantity_normalized}"
            )

        txn = InventoryTransaction(
            item_id=item.id,
            transaction_type=TransactionType(normalized.transaction_type),
            quantity=normalized.quantity,
            unit=normalized.unit,
            quantity_normalized=normalized.quantity_normalized,
            unit_cost=normalized.unit_cost,
            occurred_at=normalized.occurred_at,
            reference=normalized.reference,
            notes=normalized.notes,
        )
        self.db.add(txn)
        self.db.commit()
        self.db.refresh(txn)

        logger.info(
            f"Recorded {normalized.transaction_type} of {normalized.quantity} {normalized.unit} "
            f"{item.name} ({normalized.material_type})"
        )
        return txn

    def list_transactions(
        self,
        material_type: Optional[str] = None,
        search: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict:
        query = self.db.query(InventoryTransaction).join(InventoryItem)
        if material_type:
            query = query.filter(InventoryItem.material_type == MaterialType(material_type))
        if search:
            query = query.filter(InventoryItem.name.ilike(f"%{search}%"))
        if from_date:
            query = query.filter(InventoryTransaction.occurred_at >= from_date)
        if to_date:
            query = query.filter(InventoryTransaction.occurred_at <= to_date)

        total = query.count()
        rows = query.order_by(InventoryTransaction.occurred_at.desc()).offset(offset).limit(limit).all()
        return {
            "items": [transaction_to_dict(t) for t in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    def calculate_on_hand(self, material_type: Optional[str] = None, as_of: datetime = None) -> List[Dict]:
        """Calculate on-hand inventory for all active items"""
        if as_of is None:
            as_of = datetime.utcnow()

        query = self.db.query(InventoryItem).filter(InventoryItem.active == True)  # noqa: E712
        if material_type:
            query = query.filter(InventoryItem.material_type == MaterialType(material_type))

        results = []
        for item in query.order_by(InventoryItem.name).all():
            on_hand = sum(t.quantity_normalized for t in item.transactions if t.occurred_at <= as_of)
            results.append({
                "item_id": item.id,
                "item_name": item.name,
                "material_type": item.material_type.value,
                "quantity": on_hand,
                "unit": item.base_unit,
            })
        return results
