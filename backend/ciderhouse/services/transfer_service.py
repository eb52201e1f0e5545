"""
Transfer Service
Vessel-to-vessel transfers with volume guards and blend confirmation
"""

from sqlalchemy.orm import Session
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
import enum
import logging
import uuid

from ciderhouse.core.errors import NotFoundError, TransferValidationError, VesselStateValidationError
from ciderhouse.core.security import create_confirmation_token, decode_confirmation_token
from ciderhouse.core.units import from_liters, to_liters
from ciderhouse.models import (
    Batch,
    BatchStatus,
    BatchTransfer,
    CLOSED_BATCH_STATUSES,
    Vessel,
    VesselStatus,
)
from ciderhouse.schemas.vessel import TransferPreview, TransferRequest

logger = logging.getLogger(__name__)

# Absorbs display rounding (about 0.05 gal)
EPSILON_L = 0.2
MAX_TRANSFER_L = 50000


def transfer_volume_check(current_volume_l: float, volume: float, loss: float, unit: str) -> Dict:
    """
    Compare what a transfer uses against what the source holds.

    remaining is in the display unit; the guard itself runs in liters.
    """
    total_used_l = to_liters(volume, unit) + to_liters(loss, unit)
    remaining = from_liters(current_volume_l, unit) - volume - loss
    return {
        "total_used_l": total_used_l,
        "remaining": remaining,
        "is_valid": total_used_l <= current_volume_l + EPSILON_L,
    }


class TransferState(str, enum.Enum):
    """Blend workflow state"""
    draft = "draft"
    pending_confirmation = "pending_confirmation"
    committed = "committed"


@dataclass
class TransferPlan:
    """Validated transfer, ready to commit"""
    request: TransferRequest
    source_vessel: Vessel
    destination_vessel: Vessel
    source_batch: Batch
    destination_batch: Optional[Batch]
    volume_l: float
    loss_l: float
    total_used_l: float
    remaining: float
    destination_volume_l: float
    warnings: List[str] = field(default_factory=list)

    @property
    def destination_has_liquid(self) -> bool:
        return self.destination_volume_l > 0

    @property
    def destination_after_l(self) -> float:
        return self.destination_volume_l + self.volume_l


class TransferService:
    """Validation and execution of cellar transfers"""

    def __init__(self, db: Session):
        self.db = db

    def _vessel(self, vessel_id: uuid.UUID, role: str) -> Vessel:
        vessel = self.db.query(Vessel).filter(Vessel.id == vessel_id).first()
        if not vessel:
            raise NotFoundError(
                f"{role.capitalize()} vessel {vessel_id} not found",
                context={"vessel_id": str(vessel_id)}
            )
        return vessel

    @staticmethod
    def _check_request(request: TransferRequest) -> None:
        if request.volume is None or request.volume <= 0:
            raise TransferValidationError(
                f"Transfer volume must be positive, got {request.volume}",
                user_message="Transfer volume must be greater than zero",
                context={"volume": request.volume}
            )
        if request.loss < 0:
            raise TransferValidationError(
                f"Transfer loss cannot be negative, got {request.loss}",
                user_message="Loss cannot be negative",
                context={"loss": request.loss}
            )
        if to_liters(request.volume, request.unit) > MAX_TRANSFER_L:
            raise TransferValidationError(
                f"Transfer volume exceeds {MAX_TRANSFER_L} L",
                user_message=f"Transfers are limited to {MAX_TRANSFER_L:,} L",
                context={"volume": request.volume, "unit": request.unit}
            )
        if request.from_vessel_id == request.to_vessel_id:
            raise TransferValidationError(
                "Source and destination vessels are the same",
                user_message="Cannot transfer a vessel into itself"
            )
        if request.transferred_at and request.transferred_at > datetime.utcnow():
            raise TransferValidationError(
                "Transfer date is in the future",
                user_message="Transfer date cannot be in the future",
                context={"transferred_at": request.transferred_at.isoformat()}
            )

    def validate(self, request: TransferRequest) -> TransferPlan:
        """Run every guard; raises on the first blocking problem"""
        self._check_request(request)

        source = self._vessel(request.from_vessel_id, "source")
        destination = self._vessel(request.to_vessel_id, "destination")

        if source.status in (VesselStatus.cleaning, VesselStatus.maintenance):
            raise VesselStateValidationError(
                f"Source vessel {source.name} is in {source.status.value}",
                user_message=f"{source.name} is in {source.status.value}",
                context={"vessel_id": str(source.id), "status": source.status.value}
            )
        if destination.status != VesselStatus.available:
            raise VesselStateValidationError(
                f"Destination vessel {destination.name} is in {destination.status.value}",
                user_message=f"{destination.name} is not available ({destination.status.value})",
                context={"vessel_id": str(destination.id), "status": destination.status.value}
            )

        source_batch = source.active_batch
        if source_batch is None:
            raise TransferValidationError(
                f"No active batch in {source.name}",
                user_message=f"{source.name} has no batch to transfer",
                context={"vessel_id": str(source.id)}
            )
        if source_batch.status in CLOSED_BATCH_STATUSES:
            raise TransferValidationError(
                f"Batch {source_batch.name} is {source_batch.status.value}",
                context={"batch_id": str(source_batch.id)}
            )

        current_l = source_batch.current_volume_l or 0.0
        check = transfer_volume_check(current_l, request.volume, request.loss, request.unit)
        if not check["is_valid"]:
            raise TransferValidationError(
                f"Transfer uses {check['total_used_l']:.2f} L but {source.name} holds {current_l:.2f} L",
                user_message=(
                    f"Transfer plus loss exceeds the volume in {source.name} "
                    f"({from_liters(current_l, request.unit):.1f} {request.unit})"
                ),
                context={
                    "total_used_l": check["total_used_l"],
                    "current_volume_l": current_l,
                    "remaining": check["remaining"],
                }
            )

        volume_l = to_liters(request.volume, request.unit)
        loss_l = to_liters(request.loss, request.unit)
        destination_volume_l = destination.current_volume_l
        after_l = destination_volume_l + volume_l
        warnings = []

        if after_l > destination.capacity_l + EPSILON_L:
            raise VesselStateValidationError(
                f"{destination.name} would hold {after_l:.1f} L, capacity {destination.capacity_l:.1f} L",
                user_message=f"Transfer would overfill {destination.name}",
                context={"destination_after_l": after_l, "capacity_l": destination.capacity_l}
            )
        if destination.working_capacity_l and after_l > destination.working_capacity_l:
            warnings.append(
                f"{destination.name} will be above its working capacity "
                f"({after_l:.1f} L of {destination.working_capacity_l:.1f} L)"
            )

        return TransferPlan(
            request=request,
            source_vessel=source,
            destination_vessel=destination,
            source_batch=source_batch,
            destination_batch=destination.active_batch,
            volume_l=volume_l,
            loss_l=loss_l,
            total_used_l=check["total_used_l"],
            remaining=check["remaining"],
            destination_volume_l=destination_volume_l,
            warnings=warnings,
        )

    def is_confirmed(self, confirmation_jti: str) -> bool:
        """True when a transfer was already committed with this confirmation token"""
        return self.db.query(BatchTransfer.id).filter(
            BatchTransfer.confirmation_jti == confirmation_jti
        ).first() is not None

    def commit(
        self,
        plan: TransferPlan,
        user_id: Optional[str] = None,
        confirmation_jti: Optional[str] = None
    ) -> BatchTransfer:
        """Write the transfer; an empty destination gets a new child batch"""
        source = plan.source_batch
        when = plan.request.transferred_at or datetime.utcnow()

        destination_batch = plan.destination_batch
        if destination_batch is None:
            destination_batch = Batch(
                name=f"{source.name} - {plan.destination_vessel.name}",
                custom_name=source.custom_name,
                batch_number=source.batch_number,
                vessel_id=plan.destination_vessel.id,
                parent_batch_id=source.id,
                product_type=source.product_type,
                status=source.status,
                initial_volume_l=plan.volume_l,
                current_volume_l=0.0,
                start_date=when,
                actual_abv=source.actual_abv,
            )
            self.db.add(destination_batch)
            self.db.flush()

        transfer = BatchTransfer(
            source_batch_id=source.id,
            destination_batch_id=destination_batch.id,
            source_vessel_id=plan.source_vessel.id,
            destination_vessel_id=plan.destination_vessel.id,
            volume_l=plan.volume_l,
            loss_l=plan.loss_l,
            transferred_at=when,
            reason=plan.request.reason,
            notes=plan.request.notes,
            confirmation_jti=confirmation_jti,
            created_by=uuid.UUID(user_id) if user_id else None,
        )
        self.db.add(transfer)

        remaining_l = (source.current_volume_l or 0.0) - plan.volume_l - plan.loss_l
        if remaining_l <= EPSILON_L:
            source.current_volume_l = 0.0
            source.status = BatchStatus.completed
            source.end_date = when
        else:
            source.current_volume_l = remaining_l
        destination_batch.current_volume_l = (destination_batch.current_volume_l or 0.0) + plan.volume_l

        self.db.commit()
        self.db.refresh(transfer)

        logger.info(
            f"Transferred {plan.volume_l:.2f} L (loss {plan.loss_l:.2f} L) "
            f"{plan.source_vessel.name} -> {plan.destination_vessel.name}"
        )
        return transfer


class TransferWorkflow:
    """
    Two-state transfer: a blend into a vessel that already holds liquid stops
    at PENDING_CONFIRMATION and commits only through confirm().
    """

    def __init__(self, service: TransferService, user_id: Optional[str] = None):
        self.service = service
        self.user_id = user_id
        self.state = TransferState.draft
        self.request: Optional[TransferRequest] = None
        self.confirmation_jti: Optional[str] = None

    @classmethod
    def resume(cls, service: TransferService, token: str, user_id: Optional[str] = None) -> "TransferWorkflow":
        """Rebuild a pending workflow from its confirmation token"""
        payload = decode_confirmation_token(token)
        workflow = cls(service, user_id)
        workflow.request = TransferRequest(**payload["request"])
        workflow.confirmation_jti = payload.get("jti")
        workflow.state = TransferState.pending_confirmation
        return workflow

    def _preview(self, plan: TransferPlan, state: TransferState, **extra) -> TransferPreview:
        return TransferPreview(
            state=state.value,
            from_vessel_id=plan.source_vessel.id,
            to_vessel_id=plan.destination_vessel.id,
            volume_l=plan.volume_l,
            loss_l=plan.loss_l,
            total_used_l=plan.total_used_l,
            remaining=round(plan.remaining, 1),
            unit=plan.request.unit,
            destination_volume_l=plan.destination_volume_l,
            destination_after_l=plan.destination_after_l,
            warnings=plan.warnings,
            **extra
        )

    def _commit(self, plan: TransferPlan) -> TransferPreview:
        transfer = self.service.commit(plan, self.user_id, self.confirmation_jti)
        self.state = TransferState.committed
        return self._preview(
            plan,
            TransferState.committed,
            transfer_id=transfer.id,
            destination_batch_id=transfer.destination_batch_id,
        )

    def submit(self, request: TransferRequest) -> TransferPreview:
        if self.state != TransferState.draft:
            raise TransferValidationError(f"Cannot submit a transfer in state {self.state.value}")

        plan = self.service.validate(request)
        self.request = request

        if plan.destination_has_liquid:
            self.state = TransferState.pending_confirmation
            self.confirmation_jti = uuid.uuid4().hex
            token = create_confirmation_token({
                "jti": self.confirmation_jti,
                "request": request.model_dump(mode="json"),
                "user_id": self.user_id,
            })
            logger.info(f"Blend into {plan.destination_vessel.name} awaiting confirmation")
            return self._preview(
                plan,
                TransferState.pending_confirmation,
                requires_blend_confirmation=True,
                confirmation_token=token,
            )

        return self._commit(plan)

    def confirm(self) -> TransferPreview:
        """Commit a pending blend; re-validates since the cellar may have changed"""
        if self.state != TransferState.pending_confirmation or self.request is None:
            raise TransferValidationError(
                f"Cannot confirm a transfer in state {self.state.value}",
                user_message="There is no transfer awaiting confirmation"
            )
        if self.confirmation_jti and self.service.is_confirmed(self.confirmation_jti):
            raise TransferValidationError(
                f"Blend confirmation {self.confirmation_jti} was already used",
                user_message="This blend has already been confirmed",
                context={"confirmation_jti": self.confirmation_jti}
            )
        plan = self.service.validate(self.request)
        return self._commit(plan)
