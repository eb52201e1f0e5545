"""
Vessel Models
Tanks and barrels that hold batches
"""

from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class VesselMaterial(str, enum.Enum):
    """Vessel material enumeration"""
    stainless_steel = "stainless_steel"
    plastic = "plastic"
    wood = "wood"
    glass = "glass"
    other = "other"


class VesselStatus(str, enum.Enum):
    """Vessel status enumeration"""
    available = "available"
    cleaning = "cleaning"
    maintenance = "maintenance"


class ToastLevel(str, enum.Enum):
    """Barrel toast level enumeration"""
    light = "light"
    medium = "medium"
    medium_plus = "medium_plus"
    heavy = "heavy"
    char = "char"


class BarrelOriginType(Base):
    """What a barrel previously held (bourbon, rye, sherry...)"""
    __tablename__ = "barrel_origin_types"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    vessels = relationship("Vessel", back_populates="barrel_origin_type")

    def __repr__(self):
        return f"<BarrelOriginType(name='{self.name}')>"


class Vessel(Base):
    """
    Vessel model

    capacity_l is the canonical maximum; capacity/capacity_unit keep what the
    user entered. working_capacity_l is the normal fill line (headspace).
    """
    __tablename__ = "vessels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    capacity = Column(Float, nullable=False)
    capacity_unit = Column(String, nullable=False, default="L")
    capacity_l = Column(Float, nullable=False)
    working_capacity_l = Column(Float, nullable=True)
    material = Column(SQLEnum(VesselMaterial, name="vessel_material_t"), nullable=False)
    jacketed = Column(Boolean, nullable=False, default=False)
    is_pressure_vessel = Column(Boolean, nullable=False, default=False)
    is_barrel = Column(Boolean, nullable=False, default=False)
    barrel_origin_type_id = Column(UUID(as_uuid=True), ForeignKey("barrel_origin_types.id"), nullable=True)
    toast_level = Column(SQLEnum(ToastLevel, name="toast_level_t"), nullable=True)
    year_acquired = Column(Integer, nullable=True)
    status = Column(SQLEnum(VesselStatus, name="vessel_status_t"), nullable=False, default=VesselStatus.available)
    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    barrel_origin_type = relationship("BarrelOriginType", back_populates="vessels")
    batches = relationship("Batch", back_populates="vessel")

    def __repr__(self):
        return f"<Vessel(id={self.id}, name='{self.name}', capacity_l={self.capacity_l})>"

    @property
    def active_batch(self):
        """Batch currently holding liquid in this vessel, if any"""
        for batch in self.batches:
            if batch.is_active:
                return batch
        return None

    @property
    def current_volume_l(self) -> float:
        return sum(b.current_volume_l or 0.0 for b in self.batches if b.is_active)
