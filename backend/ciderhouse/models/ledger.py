"""
Batch Volume Ledger - IMMUTABLE
Every movement of liquid into or out of a batch
"""

from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Text, Enum as SQLEnum, event
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum

from ciderhouse.core.database import Base


class PackagingKind(str, enum.Enum):
    """Packaging run kind enumeration"""
    bottling = "bottling"
    kegging = "kegging"


class LossKind(str, enum.Enum):
    """Cellar loss kind enumeration"""
    racking = "racking"
    filter = "filter"


class BatchTransfer(Base):
    """
    Transfer of liquid from one batch to another (vessel to vessel)

    loss_l is liquid lost in the lines; it leaves the source but never
    reaches the destination.
    """
    __tablename__ = "batch_transfers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    destination_batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    source_vessel_id = Column(UUID(as_uuid=True), ForeignKey("vessels.id", ondelete="SET NULL"), nullable=True)
    destination_vessel_id = Column(UUID(as_uuid=True), ForeignKey("vessels.id", ondelete="SET NULL"), nullable=True)
    volume_l = Column(Float, nullable=False)
    loss_l = Column(Float, nullable=False, default=0.0)
    transferred_at = Column(DateTime, nullable=False, index=True)
    reason = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    # jti of the blend confirmation token that committed this transfer
    confirmation_jti = Column(String(64), nullable=True, unique=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    source_batch = relationship("Batch", back_populates="transfers_out", foreign_keys=[source_batch_id])
    destination_batch = relationship("Batch", back_populates="transfers_in", foreign_keys=[destination_batch_id])

    def __repr__(self):
        return f"<BatchTransfer({self.source_batch_id} -> {self.destination_batch_id}, {self.volume_l} L)>"


class BatchMerge(Base):
    """Juice or cider merged into a batch, optionally from another batch"""
    __tablename__ = "batch_merges"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    target_batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    source_batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=True, index=True)
    volume_l = Column(Float, nullable=False)
    merged_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    target_batch = relationship("Batch", back_populates="merges_in", foreign_keys=[target_batch_id])
    source_batch = relationship("Batch", back_populates="merges_out", foreign_keys=[source_batch_id])

    def __repr__(self):
        return f"<BatchMerge({self.source_batch_id} -> {self.target_batch_id}, {self.volume_l} L)>"


class PackagingRun(Base):
    """Bottling or kegging run drawing volume out of a batch"""
    __tablename__ = "packaging_runs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    kind = Column(SQLEnum(PackagingKind, name="packaging_kind_t"), nullable=False)
    volume_taken_l = Column(Float, nullable=False)
    loss_l = Column(Float, nullable=False, default=0.0)
    units_produced = Column(Integer, nullable=False, default=0)
    package_size_ml = Column(Float, nullable=True)
    packaged_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="packaging_runs")

    def __repr__(self):
        return f"<PackagingRun(batch={self.batch_id}, kind='{self.kind}', taken={self.volume_taken_l} L)>"

    @property
    def loss_included_in_volume_taken(self) -> bool:
        """
        Some runs record volume_taken_l as packaged volume plus loss.
        Detect that so the loss is not subtracted twice.
        """
        if not self.package_size_ml or not self.units_produced:
            return False
        packaged_l = self.units_produced * self.package_size_ml / 1000
        return abs(self.volume_taken_l - (packaged_l + (self.loss_l or 0.0))) < 2

    @property
    def effective_loss_l(self) -> float:
        if self.loss_included_in_volume_taken:
            return 0.0
        return self.loss_l or 0.0


class BatchVolumeAdjustment(Base):
    """Signed manual volume correction"""
    __tablename__ = "batch_volume_adjustments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    adjustment_l = Column(Float, nullable=False)
    reason = Column(Text, nullable=True)
    adjusted_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="adjustments")

    def __repr__(self):
        return f"<BatchVolumeAdjustment(batch={self.batch_id}, delta={self.adjustment_l} L)>"


class BatchLoss(Base):
    """Racking or filtering loss"""
    __tablename__ = "batch_losses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    kind = Column(SQLEnum(LossKind, name="loss_kind_t"), nullable=False)
    volume_loss_l = Column(Float, nullable=False)
    occurred_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="losses")

    def __repr__(self):
        return f"<BatchLoss(batch={self.batch_id}, kind='{self.kind}', {self.volume_loss_l} L)>"

    @property
    def is_historical_record(self) -> bool:
        """Backfilled racking rows that never moved liquid"""
        return self.kind == LossKind.racking and "Historical Record" in (self.notes or "")


class Distillation(Base):
    """Volume sent to the still for brandy"""
    __tablename__ = "distillations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    volume_l = Column(Float, nullable=False)
    sent_at = Column(DateTime, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="distillations")

    def __repr__(self):
        return f"<Distillation(batch={self.batch_id}, {self.volume_l} L)>"


class BatchCarbonation(Base):
    """Forced carbonation operation"""
    __tablename__ = "batch_carbonations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_id = Column(UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False)
    target_co2_volumes = Column(Float, nullable=True)
    final_co2_volumes = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    batch = relationship("Batch", back_populates="carbonations")

    def __repr__(self):
        return f"<BatchCarbonation(batch={self.batch_id}, final={self.final_co2_volumes})>"


IMMUTABLE_LEDGER_MODELS = (
    BatchTransfer,
    BatchMerge,
    PackagingRun,
    BatchVolumeAdjustment,
    BatchLoss,
    Distillation,
)


def block_ledger_update(mapper, connection, target):
    """Prevent updates to ledger rows - they are immutable"""
    raise ValueError(
        f"{type(target).__name__} records are immutable. "
        "Record a volume adjustment to correct the batch."
    )


def block_ledger_delete(mapper, connection, target):
    """Prevent deletion of ledger rows - they are immutable"""
    raise ValueError(
        f"{type(target).__name__} records cannot be deleted. "
        "Record a volume adjustment to correct the batch."
    )


for _model in IMMUTABLE_LEDGER_MODELS:
    event.listen(_model, "before_update", block_ledger_update)
    event.listen(_model, "before_delete", block_ledger_delete)
