"""
Purchase Models
Fruit and juice purchases from vendors
"""

from sqlalchemy import Column, String, Float, Date, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class PurchaseUnit(str, enum.Enum):
    """Purchase line unit enumeration"""
    kg = "kg"
    lb = "lb"
    bushel = "bushel"
    L = "L"
    gal = "gal"


WEIGHT_PURCHASE_UNITS = {PurchaseUnit.kg, PurchaseUnit.lb, PurchaseUnit.bushel}


class Purchase(Base):
    """Purchase header"""
    __tablename__ = "purchases"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id"), nullable=False, index=True)
    purchase_date = Column(Date, nullable=False, index=True)
    invoice_number = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    vendor = relationship("Vendor", back_populates="purchases")
    lines = relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.created_at"
    )

    def __repr__(self):
        return f"<Purchase(id={self.id}, vendor={self.vendor_id}, date={self.purchase_date})>"

    @property
    def vendor_name(self):
        return self.vendor.name if self.vendor else None

    @property
    def total_cost(self) -> float:
        return sum(line.total_cost or 0.0 for line in self.lines)


class PurchaseLine(Base):
    """Purchase line item"""
    __tablename__ = "purchase_lines"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    purchase_id = Column(UUID(as_uuid=True), ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    variety_id = Column(UUID(as_uuid=True), ForeignKey("fruit_varieties.id"), nullable=True)
    quantity = Column(Float, nullable=False)
    unit = Column(SQLEnum(PurchaseUnit, name="purchase_unit_t"), nullable=False)
    quantity_kg = Column(Float, nullable=True)
    quantity_l = Column(Float, nullable=True)
    price_per_unit = Column(Float, nullable=True)
    total_cost = Column(Float, nullable=True)
    harvest_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    purchase = relationship("Purchase", back_populates="lines")
    variety = relationship("FruitVariety")

    def __repr__(self):
        return f"<PurchaseLine(id={self.id}, qty={self.quantity} {self.unit})>"

    @property
    def variety_name(self):
        return self.variety.name if self.variety else None
