"""
Batch Models
Batches of cider in production plus their measurements and additives
"""

from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class ProductType(str, enum.Enum):
    """Product type enumeration"""
    cider = "cider"
    perry = "perry"
    brandy = "brandy"
    pommeau = "pommeau"
    juice = "juice"
    other = "other"


class BatchStatus(str, enum.Enum):
    """Fermentation/aging stage enumeration"""
    fermentation = "fermentation"
    aging = "aging"
    conditioning = "conditioning"
    completed = "completed"
    discarded = "discarded"


class ReconciliationStatus(str, enum.Enum):
    """Reconciliation status enumeration"""
    pending = "pending"
    verified = "verified"
    duplicate = "duplicate"
    excluded = "excluded"


CLOSED_BATCH_STATUSES = {BatchStatus.completed, BatchStatus.discarded}


class Batch(Base):
    """
    Batch model

    initial_volume_l is what the batch started with; current_volume_l is the
    stored running volume. Reconciliation compares the latter with the volume
    reconstructed from the ledger tables.
    """
    __tablename__ = "batches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    custom_name = Column(String, nullable=True)
    batch_number = Column(String, nullable=True, index=True)
    vessel_id = Column(UUID(as_uuid=True), ForeignKey("vessels.id"), nullable=True, index=True)
    parent_batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=True)
    product_type = Column(SQLEnum(ProductType, name="product_type_t"), nullable=True, default=ProductType.cider)
    status = Column(SQLEnum(BatchStatus, name="batch_status_t"), nullable=False, default=BatchStatus.fermentation)
    initial_volume_l = Column(Float, nullable=False, default=0.0)
    current_volume_l = Column(Float, nullable=False, default=0.0)
    start_date = Column(DateTime, nullable=True, index=True)
    end_date = Column(DateTime, nullable=True)
    actual_abv = Column(Float, nullable=True)
    reconciliation_status = Column(
        SQLEnum(ReconciliationStatus, name="reconciliation_status_t"),
        nullable=False,
        default=ReconciliationStatus.pending
    )
    verified_for_year = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    vessel = relationship("Vessel", back_populates="batches")
    parent = relationship("Batch", remote_side=[id])
    measurements = relationship("BatchMeasurement", back_populates="batch", order_by="BatchMeasurement.measured_at")
    additives = relationship("BatchAdditive", back_populates="batch", order_by="BatchAdditive.added_at")
    transfers_out = relationship(
        "BatchTransfer",
        back_populates="source_batch",
        foreign_keys="BatchTransfer.source_batch_id"
    )
    transfers_in = relationship(
        "BatchTransfer",
        back_populates="destination_batch",
        foreign_keys="BatchTransfer.destination_batch_id"
    )
    merges_in = relationship("BatchMerge", back_populates="target_batch", foreign_keys="BatchMerge.target_batch_id")
    merges_out = relationship("BatchMerge", back_populates="source_batch", foreign_keys="BatchMerge.source_batch_id")
    packaging_runs = relationship("PackagingRun", back_populates="batch")
    adjustments = relationship("BatchVolumeAdjustment", back_populates="batch")
    losses = relationship("BatchLoss", back_populates="batch")
    distillations = relationship("Distillation", back_populates="batch")
    carbonations = relationship("BatchCarbonation", back_populates="batch")

    def __repr__(self):
        return f"<Batch(id={self.id}, name='{self.name}', volume_l={self.current_volume_l})>"

    @property
    def display_name(self) -> str:
        return self.custom_name or self.name

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_active(self) -> bool:
        """Batch still occupies its vessel"""
        return not self.is_deleted and self.status not in CLOSED_BATCH_STATUSES

    @property
    def vessel_name(self):
        return self.vessel.name if self.vessel else None

    def is_verified_for(self, year: int) -> bool:
        return (
            self.reconciliation_status == ReconciliationStatus.verified
            and self.verified_for_year == year
        )


class BatchMeasurement(Base):
    """Lab measurement for a batch"""
    __tablename__ = "batch_measurements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    measured_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    specific_gravity = Column(Float, nullable=True)
    abv = Column(Float, nullable=True)
    ph = Column(Float, nullable=True)
    temperature_c = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="measurements")

    def __repr__(self):
        return f"<BatchMeasurement(batch={self.batch_id}, sg={self.specific_gravity}, abv={self.abv})>"


class BatchAdditive(Base):
    """Additive dosed into a batch"""
    __tablename__ = "batch_additives"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    additive_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    unit = Column(String, nullable=False)
    added_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="additives")

    def __repr__(self):
        return f"<BatchAdditive(batch={self.batch_id}, '{self.additive_name}' {self.amount}{self.unit})>"
