"""
Verification Service
Reconciliation status changes: verify, force-verify, reset, exclude, duplicate
"""

from sqlalchemy.orm import Session
from datetime import date
from typing import Dict, List, Optional, Sequence
import logging
import uuid

from ciderhouse.core.errors import NotFoundError, PeriodFinalizedError, ReconciliationError
from ciderhouse.models import Batch, ReconciliationStatus, TTBReportingPeriod, PeriodStatus
from ciderhouse.services.batch_validation_service import validate_batch

logger = logging.getLogger(__name__)


class VerificationService:
    """Batch reconciliation status mutations"""

    def __init__(self, db: Session):
        self.db = db

    def _load(self, batch_ids: Sequence) -> List[Batch]:
        ids = [uuid.UUID(str(i)) for i in batch_ids]
        batches = self.db.query(Batch).filter(Batch.id.in_(ids), Batch.deleted_at.is_(None)).all()
        found = {b.id for b in batches}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise NotFoundError(
                f"Batches not found: {', '.join(missing)}",
                user_message="One or more batches no longer exist",
                context={"batch_ids": missing}
            )
        return batches

    def is_year_locked(self, year: int) -> bool:
        """A year is locked once a finalized period closes it (ends on Dec 31)"""
        return self.db.query(TTBReportingPeriod).filter(
            TTBReportingPeriod.status == PeriodStatus.finalized,
            TTBReportingPeriod.period_end == date(year, 12, 31)
        ).first() is not None

    def ensure_year_open(self, year: int) -> None:
        if self.is_year_locked(year):
            raise PeriodFinalizedError(
                f"Reporting year {year} is finalized",
                user_message=f"{year} has been finalized; reconciliation status can no longer change",
                context={"year": year}
            )

    def validate_and_verify(
        self,
        batch_ids: Sequence,
        year: int,
        force_verify_warnings: bool = False
    ) -> Dict:
        """
        Re-run validation and verify batches that pass.
        Warnings verify only when forced; failures never verify.
        """
        self.ensure_year_open(year)
        verified: List[uuid.UUID] = []
        blocked: List[Dict] = []

        for batch in self._load(batch_ids):
            validation = validate_batch(batch, year)
            if validation.status == "fail":
                reasons = "; ".join(c.message for c in validation.checks if c.status == "fail")
                blocked.append({"batch_id": batch.id, "status": "fail", "reason": reasons})
                continue
            if validation.status == "warning" and not force_verify_warnings:
                reasons = "; ".join(c.message for c in validation.checks if c.status == "warning")
                blocked.append({"batch_id": batch.id, "status": "warning", "reason": reasons})
                continue

            batch.reconciliation_status = ReconciliationStatus.verified
            batch.verified_for_year = year
            verified.append(batch.id)

        self.db.commit()
        logger.info(f"Verified {len(verified)} batches for {year}, blocked {len(blocked)}")
        return {"verified": verified, "blocked": blocked}

    def bulk_update_status(self, batch_ids: Sequence, status: str, year: Optional[int] = None) -> int:
        """Set reconciliation status; anything other than verified clears the verified year"""
        try:
            new_status = ReconciliationStatus(status)
        except ValueError:
            raise ReconciliationError(
                f"Unknown reconciliation status: {status}",
                context={"status": status}
            )

        if new_status == ReconciliationStatus.verified and year is None:
            raise ReconciliationError(
                "Year is required to verify batches",
                user_message="Select a reporting year before verifying"
            )

        batches = self._load(batch_ids)
        years = {year} if year is not None else {b.verified_for_year for b in batches if b.verified_for_year}
        for locked_year in years:
            self.ensure_year_open(locked_year)

        for batch in batches:
            batch.reconciliation_status = new_status
            batch.verified_for_year = year if new_status == ReconciliationStatus.verified else None

        self.db.commit()
        logger.info(f"Set {len(batches)} batches to {new_status.value}")
        return len(batches)
