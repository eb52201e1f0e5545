"""
TTB Reporting Models
Finalized reporting periods with a snapshot of the reconciliation totals
"""

from sqlalchemy import Column, String, Float, Date, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime, timedelta
import uuid
import enum

from ciderhouse.core.database import Base


class PeriodStatus(str, enum.Enum):
    """Reporting period status enumeration"""
    draft = "draft"
    finalized = "finalized"


class TTBReportingPeriod(Base):
    """
    Reporting period snapshot

    Once finalized, batch reconciliation statuses for batches in the period
    can no longer change.
    """
    __tablename__ = "ttb_reporting_periods"
    __table_args__ = (
        UniqueConstraint("period_start", "period_end", name="uq_ttb_period_range"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    period_type = Column(String, nullable=False)  # annual, quarterly, monthly
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(SQLEnum(PeriodStatus, name="period_status_t"), nullable=False, default=PeriodStatus.draft)
    opening_gallons = Column(Float, nullable=False, default=0.0)
    production_gallons = Column(Float, nullable=False, default=0.0)
    losses_gallons = Column(Float, nullable=False, default=0.0)
    sales_gallons = Column(Float, nullable=False, default=0.0)
    distillation_gallons = Column(Float, nullable=False, default=0.0)
    ending_gallons = Column(Float, nullable=False, default=0.0)
    identity_check_gallons = Column(Float, nullable=False, default=0.0)
    tax_due = Column(Float, nullable=False, default=0.0)
    finalized_at = Column(DateTime, nullable=True)
    finalized_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<TTBReportingPeriod({self.period_start}..{self.period_end}, status='{self.status}')>"

    def covers_year(self, year: int) -> bool:
        """
        True when any day of the calendar year falls inside the period.
        period_start is the opening-balance date, so the first reported day is the day after.
        """
        first_day = self.period_start + timedelta(days=1)
        return first_day.year <= year <= self.period_end.year
