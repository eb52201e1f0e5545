"""
Inventory Models
Raw materials tracked by material type, with a transaction ledger
"""

from sqlalchemy import Column, String, Float, Boolean, DateTime, ForeignKey, Enum as SQLEnum, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class MaterialType(str, enum.Enum):
    """Material type enumeration"""
    additive = "additive"
    juice = "juice"
    packaging = "packaging"
    apple = "apple"


class TransactionType(str, enum.Enum):
    """Inventory transaction type enumeration"""
    purchase = "purchase"
    usage = "usage"
    adjustment = "adjustment"


class InventoryItem(Base):
    """
    Inventory Item model
    One row per (material type, name); base_unit is the normalized unit
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        UniqueConstraint("material_type", "name", name="uq_inventory_item_material_name"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    material_type = Column(SQLEnum(MaterialType, name="material_type_t"), nullable=False, index=True)
    name = Column(String, nullable=False)
    base_unit = Column(String, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    transactions = relationship("InventoryTransaction", back_populates="item")

    def __repr__(self):
        return f"<InventoryItem(id={self.id}, name='{self.name}', type='{self.material_type}')>"

    @property
    def on_hand(self) -> float:
        return sum(t.quantity_normalized for t in self.transactions)


class InventoryTransaction(Base):
    """
    Inventory Transaction model
    quantity/unit are as entered; quantity_normalized is signed and in the item's base unit
    """
    __tablename__ = "inventory_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    item_id = Column(UUID(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False, index=True)
    transaction_type = Column(SQLEnum(TransactionType, name="transaction_type_t"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    quantity_normalized = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=True)
    occurred_at = Column(DateTime, nullable=False, index=True)
    reference = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    item = relationship("InventoryItem", back_populates="transactions")

    def __repr__(self):
        return f"<InventoryTransaction(item={self.item_id}, type='{self.transaction_type}', qty={self.quantity_normalized})>"
