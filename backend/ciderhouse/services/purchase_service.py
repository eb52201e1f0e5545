"""
Purchase Service
Creates purchases and normalizes line quantities to kg or liters
"""

from sqlalchemy.orm import Session, selectinload
from datetime import date
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from ciderhouse.core.errors import NotFoundError
from ciderhouse.core.units import bushels_to_kg, convert_weight, to_liters
from ciderhouse.models import FruitVariety, Purchase, PurchaseLine, PurchaseUnit, Vendor
from ciderhouse.schemas.purchase import PurchaseCreate, PurchaseLineCreate, PurchaseUpdate

logger = logging.getLogger(__name__)


def normalize_line_quantity(quantity: float, unit: str) -> Tuple[Optional[float], Optional[float]]:
    """(quantity_kg, quantity_l) for a purchase line; only one is set"""
    if unit == PurchaseUnit.bushel.value:
        return bushels_to_kg(quantity), None
    if unit in (PurchaseUnit.kg.value, PurchaseUnit.lb.value):
        return round(convert_weight(quantity, unit, "kg"), 3), None
    return None, round(to_liters(quantity, unit), 3)


def line_total_cost(line: PurchaseLineCreate) -> Optional[float]:
    if line.price_per_unit is None:
        return None
    return round(line.quantity * line.price_per_unit, 2)


class PurchaseService:
    """Purchase create/update/list"""

    def __init__(self, db: Session):
        self.db = db

    def _vendor(self, vendor_id: uuid.UUID) -> Vendor:
        vendor = self.db.query(Vendor).filter(Vendor.id == vendor_id).first()
        if not vendor:
            raise NotFoundError(f"Vendor {vendor_id} not found", context={"vendor_id": str(vendor_id)})
        return vendor

    def get(self, purchase_id: uuid.UUID) -> Purchase:
        purchase = (
            self.db.query(Purchase)
            .options(selectinload(Purchase.lines).selectinload(PurchaseLine.variety))
            .filter(Purchase.id == purchase_id)
            .first()
        )
        if not purchase:
            raise NotFoundError(
                f"Purchase {purchase_id} not found",
                user_message="Purchase not found",
                context={"purchase_id": str(purchase_id)}
            )
        return purchase

    def create(self, data: PurchaseCreate) -> Purchase:
        self._vendor(data.vendor_id)

        purchase = Purchase(
            vendor_id=data.vendor_id,
            purchase_date=data.purchase_date,
            invoice_number=data.invoice_number,
            notes=data.notes,
        )
        for line in data.lines:
            if line.variety_id is not None:
                exists = self.db.query(FruitVariety.id).filter(FruitVariety.id == line.variety_id).first()
                if not exists:
                    raise NotFoundError(
                        f"Variety {line.variety_id} not found",
                        context={"variety_id": str(line.variety_id)}
                    )
            quantity_kg, quantity_l = normalize_line_quantity(line.quantity, line.unit)
            purchase.lines.append(PurchaseLine(
                variety_id=line.variety_id,
                quantity=line.quantity,
                unit=PurchaseUnit(line.unit),
                quantity_kg=quantity_kg,
                quantity_l=quantity_l,
                price_per_unit=line.price_per_unit,
                total_cost=line_total_cost(line),
                harvest_date=line.harvest_date,
                notes=line.notes,
            ))

        self.db.add(purchase)
        self.db.commit()
        self.db.refresh(purchase)

        logger.info(f"Created purchase {purchase.id} with {len(purchase.lines)} lines, total {purchase.total_cost:.2f}")
        return purchase

    def update(self, purchase_id: uuid.UUID, data: PurchaseUpdate) -> Purchase:
        purchase = self.get(purchase_id)
        updates = data.model_dump(exclude_unset=True)
        if updates.get("vendor_id") is not None:
            self._vendor(updates["vendor_id"])
        for key, value in updates.items():
            if value is not None or key in ("invoice_number", "notes"):
                setattr(purchase, key, value)
        self.db.commit()
        self.db.refresh(purchase)
        return purchase

    def delete(self, purchase_id: uuid.UUID) -> None:
        purchase = self.db.query(Purchase).filter(Purchase.id == purchase_id).first()
        if not purchase:
            raise NotFoundError(
                f"Delete failed: purchase {purchase_id} not found",
                user_message="Delete failed: purchase not found",
                context={"purchase_id": str(purchase_id)}
            )
        self.db.delete(purchase)
        self.db.commit()
        logger.info(f"Deleted purchase {purchase_id}")

    def list(
        self,
        vendor_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict:
        query = self.db.query(Purchase)
        if vendor_id:
            query = query.filter(Purchase.vendor_id == vendor_id)
        if from_date:
            query = query.filter(Purchase.purchase_date >= from_date)
        if to_date:
            query = query.filter(Purchase.purchase_date <= to_date)

        total = query.count()
        items: List[Purchase] = (
            query.options(selectinload(Purchase.lines).selectinload(PurchaseLine.variety))
            .order_by(Purchase.purchase_date.desc(), Purchase.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return {"items": items, "total": total, "limit": limit, "offset": offset}
