from datetime import datetime, timedelta

import pytest

from ciderhouse.core.errors import TransferValidationError, VesselStateValidationError
from ciderhouse.models import Batch, BatchStatus, BatchTransfer, VesselStatus
from ciderhouse.schemas.vessel import TransferRequest
from ciderhouse.services.transfer_service import (
    TransferService,
    TransferState,
    TransferWorkflow,
    transfer_volume_check,
)


def test_volume_check_allows_small_overdraw():
    check = transfer_volume_check(100.0, 100.0, 0.15, "L")
    assert check["is_valid"]
    assert check["remaining"] == pytest.approx(-0.15)

    blocked = transfer_volume_check(100.0, 100.0, 0.3, "L")
    assert not blocked["is_valid"]
    assert blocked["remaining"] == pytest.approx(-0.3)


def test_volume_check_in_gallons():
    check = transfer_volume_check(37.8541, 10, 0, "gal")
    assert check["is_valid"]
    assert check["remaining"] == pytest.approx(0.0)
    assert check["total_used_l"] == pytest.approx(37.8541)


@pytest.fixture
def cellar(make_vessel, make_batch):
    t1 = make_vessel("T1", 1000.0)
    t2 = make_vessel("T2", 1000.0)
    batch = make_batch("B-001", vessel=t1, volume_l=500.0)
    return t1, t2, batch


def request(source, destination, volume, loss=0.0, **kwargs):
    return TransferRequest(from_vessel_id=source.id, to_vessel_id=destination.id, volume=volume, loss=loss, **kwargs)


def test_transfer_into_empty_vessel_creates_child_batch(db, cellar):
    t1, t2, batch = cellar
    result = TransferWorkflow(TransferService(db)).submit(request(t1, t2, 200.0, 5.0))

    assert result.state == "committed"
    assert not result.requires_blend_confirmation
    assert result.remaining == pytest.approx(295.0)

    child = db.query(Batch).filter(Batch.id == result.destination_batch_id).one()
    assert child.parent_batch_id == batch.id
    assert child.vessel_id == t2.id
    assert child.initial_volume_l == pytest.approx(200.0)
    assert child.current_volume_l == pytest.approx(200.0)

    db.refresh(batch)
    assert batch.current_volume_l == pytest.approx(295.0)
    assert batch.status == BatchStatus.fermentation

    transfer = db.query(BatchTransfer).one()
    assert transfer.loss_l == pytest.approx(5.0)


def test_emptying_source_completes_batch(db, cellar):
    t1, t2, batch = cellar
    TransferWorkflow(TransferService(db)).submit(request(t1, t2, 499.9))

    db.refresh(batch)
    assert batch.current_volume_l == 0.0
    assert batch.status == BatchStatus.completed
    assert batch.end_date is not None
    db.refresh(t1)
    assert t1.active_batch is None


def test_overdraw_is_blocked(db, cellar):
    t1, t2, _ = cellar
    with pytest.raises(TransferValidationError):
        TransferService(db).validate(request(t1, t2, 500.0, 0.3))


def test_blend_requires_confirmation(db, cellar, make_batch):
    t1, t2, batch = cellar
    existing = make_batch("B-002", vessel=t2, volume_l=100.0)
    service = TransferService(db)

    pending = TransferWorkflow(service).submit(request(t1, t2, 50.0))
    assert pending.state == "pending_confirmation"
    assert pending.requires_blend_confirmation
    assert pending.confirmation_token
    assert pending.destination_volume_l == pytest.approx(100.0)
    assert db.query(BatchTransfer).count() == 0

    workflow = TransferWorkflow.resume(service, pending.confirmation_token)
    assert workflow.state == TransferState.pending_confirmation
    committed = workflow.confirm()

    assert committed.state == "committed"
    assert committed.destination_batch_id == existing.id
    db.refresh(existing)
    db.refresh(batch)
    assert existing.current_volume_l == pytest.approx(150.0)
    assert batch.current_volume_l == pytest.approx(450.0)


def test_confirmation_token_is_single_use(db, cellar, make_batch):
    t1, t2, batch = cellar
    existing = make_batch("B-002", vessel=t2, volume_l=100.0)
    service = TransferService(db)
    token = TransferWorkflow(service).submit(request(t1, t2, 50.0)).confirmation_token

    TransferWorkflow.resume(service, token).confirm()
    with pytest.raises(TransferValidationError):
        TransferWorkflow.resume(service, token).confirm()

    assert db.query(BatchTransfer).count() == 1
    db.refresh(existing)
    db.refresh(batch)
    assert existing.current_volume_l == pytest.approx(150.0)
    assert batch.current_volume_l == pytest.approx(450.0)


def test_offset_timestamps_are_stored_as_utc(db, cellar):
    t1, t2, _ = cellar
    req = request(t1, t2, 20.0, transferred_at="2024-05-01T10:00:00+02:00")
    assert req.transferred_at == datetime(2024, 5, 1, 8, 0)

    result = TransferWorkflow(TransferService(db)).submit(req)
    transfer = db.query(BatchTransfer).filter(BatchTransfer.id == result.transfer_id).one()
    assert transfer.transferred_at == datetime(2024, 5, 1, 8, 0)

    future = (datetime.utcnow() + timedelta(days=1)).isoformat() + "Z"
    with pytest.raises(TransferValidationError):
        TransferService(db).validate(request(t1, t2, 20.0, transferred_at=future))


def test_workflow_state_guards(db, cellar):
    t1, t2, _ = cellar
    workflow = TransferWorkflow(TransferService(db))
    with pytest.raises(TransferValidationError):
        workflow.confirm()

    workflow.submit(request(t1, t2, 10.0))
    assert workflow.state == TransferState.committed
    with pytest.raises(TransferValidationError):
        workflow.submit(request(t1, t2, 10.0))


def test_overfill_blocks(db, make_vessel, make_batch):
    t1 = make_vessel("T1", 1000.0)
    small = make_vessel("Keg", 100.0)
    make_batch(vessel=t1, volume_l=500.0)
    with pytest.raises(VesselStateValidationError):
        TransferService(db).validate(request(t1, small, 150.0))


def test_above_working_capacity_warns(db, make_vessel, make_batch):
    t1 = make_vessel("T1", 1000.0)
    t3 = make_vessel("T3", 300.0, working_capacity_l=250.0)
    make_batch(vessel=t1, volume_l=500.0)

    plan = TransferService(db).validate(request(t1, t3, 260.0))
    assert len(plan.warnings) == 1
    assert "working capacity" in plan.warnings[0]


@pytest.mark.parametrize("kwargs", [
    {"volume": 0},
    {"volume": -5},
    {"volume": 10, "loss": -1},
    {"volume": 60000},
    {"volume": 10, "transferred_at": datetime.utcnow() + timedelta(days=2)},
])
def test_invalid_requests(db, cellar, kwargs):
    t1, t2, _ = cellar
    volume = kwargs.pop("volume")
    with pytest.raises(TransferValidationError):
        TransferService(db).validate(request(t1, t2, volume, **kwargs))


def test_same_vessel_rejected(db, cellar):
    t1, _, _ = cellar
    with pytest.raises(TransferValidationError):
        TransferService(db).validate(request(t1, t1, 10.0))


def test_source_without_batch_rejected(db, cellar):
    t1, t2, _ = cellar
    with pytest.raises(TransferValidationError):
        TransferService(db).validate(request(t2, t1, 10.0))


def test_vessel_status_guards(db, cellar):
    t1, t2, _ = cellar
    t2.status = VesselStatus.maintenance
    db.commit()
    with pytest.raises(VesselStateValidationError):
        TransferService(db).validate(request(t1, t2, 10.0))

    t2.status = VesselStatus.available
    t1.status = VesselStatus.cleaning
    db.commit()
    with pytest.raises(VesselStateValidationError):
        TransferService(db).validate(request(t1, t2, 10.0))
