from datetime import date, datetime
import uuid

import pytest

from ciderhouse.models import (
    Batch,
    BatchCarbonation,
    BatchLoss,
    BatchMeasurement,
    BatchStatus,
    BatchTransfer,
    LossKind,
    PackagingKind,
    PackagingRun,
    ProductType,
    ReconciliationStatus,
)
from ciderhouse.services.batch_ledger import BatchLedger
from ciderhouse.services.batch_validation_service import validate_batch


def make_batch(initial=100.0, current=100.0, **kwargs):
    kwargs.setdefault("vessel_id", uuid.uuid4())
    return Batch(
        id=uuid.uuid4(),
        name=kwargs.pop("name", "B-1"),
        product_type=kwargs.pop("product_type", ProductType.cider),
        status=kwargs.pop("status", BatchStatus.aging),
        reconciliation_status=ReconciliationStatus.pending,
        initial_volume_l=initial,
        current_volume_l=current,
        start_date=kwargs.pop("start_date", datetime(2024, 3, 1)),
        **kwargs
    )


def checks_by_name(result):
    return {c.check: c for c in result.checks}


def test_packaging_and_losses_reconstruct_volume():
    batch = make_batch(initial=100.0, current=70.0, actual_abv=6.5)
    PackagingRun(batch=batch, kind=PackagingKind.bottling, volume_taken_l=20.0, loss_l=2.0,
                 packaged_at=datetime(2024, 6, 1))
    BatchLoss(batch=batch, kind=LossKind.racking, volume_loss_l=8.0, occurred_at=datetime(2024, 4, 1))

    ledger = BatchLedger(batch)
    assert ledger.reconstructed_volume_l() == pytest.approx(70.0)
    assert ledger.volume_as_of(date(2024, 5, 1)) == pytest.approx(92.0)
    assert ledger.volume_as_of(date(2024, 2, 1)) == pytest.approx(0.0)

    result = validate_batch(batch, 2024)
    assert result.status == "pass"


def test_historical_racking_rows_are_ignored():
    batch = make_batch(initial=100.0, current=100.0, actual_abv=6.0)
    BatchLoss(batch=batch, kind=LossKind.racking, volume_loss_l=5.0,
              occurred_at=datetime(2024, 4, 1), notes="Historical Record import")
    assert BatchLedger(batch).reconstructed_volume_l() == pytest.approx(100.0)


def test_loss_included_in_volume_taken_not_double_counted():
    batch = make_batch(initial=100.0, current=88.0)
    run = PackagingRun(batch=batch, kind=PackagingKind.kegging, volume_taken_l=12.0, loss_l=2.0,
                       units_produced=2, package_size_ml=5000, packaged_at=datetime(2024, 6, 1))
    assert run.loss_included_in_volume_taken
    assert run.effective_loss_l == 0.0
    assert BatchLedger(batch).reconstructed_volume_l() == pytest.approx(88.0)


def test_transfer_created_child_has_no_production():
    parent = make_batch(initial=200.0, current=100.0)
    child = make_batch(name="B-1-T", initial=100.0, current=100.0, parent_batch_id=parent.id)
    BatchTransfer(source_batch=parent, destination_batch=child, volume_l=100.0, loss_l=0.0,
                  transferred_at=datetime(2024, 5, 1))

    ledger = BatchLedger(child)
    assert ledger.is_transfer_created
    assert ledger.effective_initial_l == 0.0
    assert ledger.reconstructed_volume_l() == pytest.approx(100.0)
    assert BatchLedger(parent).reconstructed_volume_l() == pytest.approx(100.0)


def test_missing_required_fields_fail():
    batch = make_batch(initial=0.0, current=0.0, start_date=None, product_type=None)
    result = validate_batch(batch, 2024)
    assert result.status == "fail"
    message = checks_by_name(result)["required_fields"].message
    assert "product type" in message
    assert "start date" in message
    assert "initial volume" in message


def test_volume_drift_levels():
    # threshold is max(100 * 0.05, 2) = 5 L
    warning = validate_batch(make_batch(initial=100.0, current=94.0, actual_abv=6.0), 2024)
    assert checks_by_name(warning)["volume_balance"].status == "warning"
    assert warning.status == "warning"

    fail = validate_batch(make_batch(initial=100.0, current=80.0, actual_abv=6.0), 2024)
    assert checks_by_name(fail)["volume_balance"].status == "fail"
    assert fail.status == "fail"


def test_missing_abv_warns_and_measurement_satisfies():
    batch = make_batch()
    assert checks_by_name(validate_batch(batch, 2024))["classification_data"].status == "warning"

    BatchMeasurement(batch=batch, abv=6.8, measured_at=datetime(2024, 4, 1))
    assert checks_by_name(validate_batch(batch, 2024))["classification_data"].status == "pass"


def test_carbonation_without_final_co2_warns():
    batch = make_batch(actual_abv=6.0)
    BatchCarbonation(batch=batch, started_at=datetime(2024, 5, 1), target_co2_volumes=2.5)
    check = checks_by_name(validate_batch(batch, 2024))["classification_data"]
    assert check.status == "warning"


def test_active_batch_without_vessel_warns():
    batch = make_batch(actual_abv=6.0, vessel_id=None)
    check = checks_by_name(validate_batch(batch, 2024))["active_volume"]
    assert check.status == "warning"


def test_start_after_reporting_year_warns():
    batch = make_batch(actual_abv=6.0, start_date=datetime(2025, 1, 10))
    check = checks_by_name(validate_batch(batch, 2024))["date_sanity"]
    assert check.status == "warning"
