"""
Vendor Models
Fruit suppliers and the varieties they supply
"""

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class FruitType(str, enum.Enum):
    """Fruit type enumeration"""
    apple = "apple"
    pear = "pear"
    other = "other"


class Vendor(Base):
    """Vendor model"""
    __tablename__ = "vendors"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    purchases = relationship("Purchase", back_populates="vendor")
    vendor_varieties = relationship("VendorVariety", back_populates="vendor", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Vendor(id={self.id}, name='{self.name}')>"


class FruitVariety(Base):
    """Fruit variety (e.g. Kingston Black, Dabinett)"""
    __tablename__ = "fruit_varieties"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    fruit_type = Column(SQLEnum(FruitType, name="fruit_type_t"), nullable=False, default=FruitType.apple)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    vendor_varieties = relationship("VendorVariety", back_populates="variety")

    def __repr__(self):
        return f"<FruitVariety(name='{self.name}', type='{self.fruit_type}')>"


class VendorVariety(Base):
    """Link between a vendor and a variety it supplies"""
    __tablename__ = "vendor_varieties"
    __table_args__ = (
        UniqueConstraint("vendor_id", "variety_id", name="uq_vendor_variety"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    variety_id = Column(UUID(as_uuid=True), ForeignKey("fruit_varieties.id"), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    vendor = relationship("Vendor", back_populates="vendor_varieties")
    variety = relationship("FruitVariety", back_populates="vendor_varieties")

    def __repr__(self):
        return f"<VendorVariety(vendor={self.vendor_id}, variety={self.variety_id})>"
