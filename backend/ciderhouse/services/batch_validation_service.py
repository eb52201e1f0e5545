"""
Batch Validation Service
Checks a batch is complete and consistent before it can be verified
"""

from typing import List
import logging

from ciderhouse.models import Batch
from ciderhouse.schemas.ttb import BatchValidation, ValidationCheck
from ciderhouse.services.batch_ledger import BatchLedger, MERGE_IN, TRANSFER_IN

logger = logging.getLogger(__name__)

VOLUME_BALANCE_RATIO = 0.05
VOLUME_BALANCE_MIN_L = 2.0


def _check(name: str, status: str, message: str) -> ValidationCheck:
    return ValidationCheck(check=name, status=status, message=message)


def check_required_fields(batch: Batch) -> ValidationCheck:
    missing = []
    if not batch.product_type:
        missing.append("product type")
    if not batch.start_date:
        missing.append("start date")
    if batch.parent_batch_id is None and (batch.initial_volume_l or 0) <= 0:
        missing.append("initial volume")
    if missing:
        return _check("required_fields", "fail", f"Missing {', '.join(missing)}")
    return _check("required_fields", "pass", "All required fields present")


def check_volume_balance(batch: Batch, ledger: BatchLedger) -> ValidationCheck:
    """Stored current volume against the ledger reconstruction"""
    expected = ledger.reconstructed_volume_l()
    current = batch.current_volume_l or 0.0
    difference = abs(current - expected)

    inputs = ledger.effective_initial_l + ledger.total(MERGE_IN)
    threshold = max(max(inputs, ledger.total(TRANSFER_IN)) * VOLUME_BALANCE_RATIO, VOLUME_BALANCE_MIN_L)

    message = f"Current {current:.1f} L vs expected {expected:.1f} L (difference {difference:.1f} L)"
    if difference > threshold * 2:
        return _check("volume_balance", "fail", message)
    if difference > threshold:
        return _check("volume_balance", "warning", message)
    return _check("volume_balance", "pass", "Volume balances with recorded operations")


def check_classification_data(batch: Batch) -> ValidationCheck:
    """ABV (and CO2 when carbonated) decide the TTB tax class"""
    has_abv = batch.actual_abv is not None or any(m.abv is not None for m in batch.measurements)
    if not has_abv:
        return _check("classification_data", "warning", "No ABV recorded")

    if any(c.final_co2_volumes is None for c in batch.carbonations):
        return _check("classification_data", "warning", "Carbonation recorded without final CO2 volumes")

    return _check("classification_data", "pass", "Classification data present")


def check_active_volume(batch: Batch, ledger: BatchLedger) -> ValidationCheck:
    current = batch.current_volume_l or 0.0
    if current > 0 and batch.vessel_id is None and batch.is_active:
        return _check("active_volume", "warning", f"{current:.1f} L recorded but batch has no vessel")
    if current <= 0 and (batch.initial_volume_l or 0) > 0 and not ledger.has_outflows():
        return _check("active_volume", "warning", "Volume is zero with no tracked transfers, packaging or losses")
    return _check("active_volume", "pass", "Active volume consistent")


def check_date_sanity(batch: Batch, year: int) -> ValidationCheck:
    if batch.start_date and batch.start_date.year > year:
        return _check("date_sanity", "warning", f"Batch starts in {batch.start_date.year}, after {year}")
    return _check("date_sanity", "pass", "Dates consistent with reporting year")


def overall_status(checks: List[ValidationCheck]) -> str:
    if any(c.status == "fail" for c in checks):
        return "fail"
    if any(c.status == "warning" for c in checks):
        return "warning"
    return "pass"


def validate_batch(batch: Batch, year: int) -> BatchValidation:
    """Run every check for a reporting year"""
    ledger = BatchLedger(batch)
    checks = [
        check_required_fields(batch),
        check_volume_balance(batch, ledger),
        check_classification_data(batch),
        check_active_volume(batch, ledger),
        check_date_sanity(batch, year),
    ]
    result = BatchValidation(status=overall_status(checks), checks=checks)
    logger.debug(f"Validated batch {batch.id}: {result.status}")
    return result
