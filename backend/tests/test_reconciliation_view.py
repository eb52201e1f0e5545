from datetime import date, datetime
import uuid

import pytest

from ciderhouse.schemas.ttb import (
    BatchReconciliation,
    BatchValidation,
    ReconciliationBatch,
    ReconciliationTotals,
    ValidationCheck,
)
from ciderhouse.services.reconciliation_view import (
    SORT_FIELDS,
    TTB_FILTERS,
    AutoVerifier,
    ReconciliationView,
    auto_verify_key,
    status_actions,
    status_label,
)


def validation(status, warnings=0, fails=0):
    checks = [ValidationCheck(check=f"w{i}", status="warning", message="w") for i in range(warnings)]
    checks += [ValidationCheck(check=f"f{i}", status="fail", message="f") for i in range(fails)]
    return BatchValidation(status=status, checks=checks)


def batch(name, **kwargs):
    kwargs.setdefault("validation", validation("pass"))
    return ReconciliationBatch(id=uuid.uuid4(), name=name, **kwargs)


def recon(b, identity=0.0, drift=0.0, anomaly=False, capacity=False, ending_l=100.0):
    gal = ending_l * 0.264172
    return BatchReconciliation(
        batch_id=b.id,
        opening_l=0.0, production_l=ending_l, transfers_in_l=0.0, transfers_out_l=0.0,
        merges_in_l=0.0, merges_out_l=0.0, adjustments_l=0.0, losses_l=0.0,
        sales_l=0.0, distillation_l=0.0, ending_l=ending_l, reconstructed_ending_l=ending_l,
        opening_gal=0.0, production_gal=gal, net_internal_gal=0.0, adjustments_gal=0.0,
        losses_gal=0.0, sales_gal=0.0, distillation_gal=0.0, ending_gal=gal,
        identity_check=identity, drift_liters=drift,
        has_initial_volume_anomaly=anomaly, exceeds_vessel_capacity=capacity,
    )


@pytest.fixture
def view():
    a = batch("Alpha", initial_volume_l=300, current_volume_l=300, vessel_name="T2",
              start_date=datetime(2024, 5, 1), product_type="perry")
    b = batch("bravo", initial_volume_l=100, current_volume_l=100, vessel_name="t1",
              start_date=datetime(2024, 2, 1), product_type="cider",
              validation=validation("warning", warnings=2), reconciliation_status="excluded")
    c = batch("Charlie", initial_volume_l=200, current_volume_l=200, vessel_name=None,
              start_date=None, product_type="brandy", validation=validation("fail", fails=1),
              verified_for_year=True, reconciliation_status="verified")
    recons = {
        str(a.id): recon(a, ending_l=300),
        str(b.id): recon(b, drift=0.7, ending_l=100),
        str(c.id): recon(c, identity=0.4, capacity=True, ending_l=200),
    }
    return ReconciliationView([a, b, c], recons)


def names(view):
    return [r.batch.name for r in view.rows()]


@pytest.mark.parametrize("field", SORT_FIELDS)
def test_sort_toggles_direction(view, field):
    view.sort_by("name" if field != "name" else "validation")
    view.sort_by(field)
    ascending = names(view)
    assert view.sort_direction == "asc"

    view.sort_by(field)
    assert view.sort_direction == "desc"
    assert names(view) == list(reversed(ascending))

    view.sort_by(field)
    assert view.sort_direction == "asc"
    assert names(view) == ascending


def test_new_sort_field_starts_ascending(view):
    view.sort_by("name")
    view.sort_by("name")
    view.sort_by("initial_volume")
    assert view.sort_direction == "asc"
    assert names(view) == ["bravo", "Charlie", "Alpha"]


def test_sort_values(view):
    view.sort_by("name")
    assert names(view) == ["Alpha", "bravo", "Charlie"]
    view.sort_by("start_date")
    assert names(view) == ["Charlie", "bravo", "Alpha"]
    view.sort_by("validation")
    assert names(view) == ["bravo", "Alpha", "Charlie"]
    view.sort_by("reconciliation_status")
    assert names(view) == ["Alpha", "Charlie", "bravo"]
    view.sort_by("vessel_name")
    assert names(view) == ["Charlie", "bravo", "Alpha"]


def test_default_sort_is_oldest_first(view):
    assert (view.sort_field, view.sort_direction) == ("start_date", "asc")
    assert names(view) == ["Charlie", "bravo", "Alpha"]


def test_set_sort_is_idempotent(view):
    view.set_sort("start_date", "desc")
    view.set_sort("start_date", "desc")
    assert names(view) == ["Alpha", "bravo", "Charlie"]
    view.set_sort("name", "asc")
    assert names(view) == ["Alpha", "bravo", "Charlie"]
    with pytest.raises(ValueError):
        view.set_sort("name", "sideways")


def test_scope_filters(view):
    view.set_product_type_filter("cider")
    assert names(view) == ["bravo"]
    view.set_product_type_filter("all")

    view.set_status_filter("verified")
    assert names(view) == ["Charlie"]
    view.set_status_filter(None)

    view.set_search("  BRAV ")
    assert names(view) == ["bravo"]
    counts = view.summary_counts()
    assert counts["all"] == 1
    assert counts["drift"] == 1
    assert counts["capacity"] == 0

    with pytest.raises(ValueError):
        view.set_product_type_filter("wine")
    with pytest.raises(ValueError):
        view.set_status_filter("archived")


def test_search_matches_custom_name():
    named = batch("2024-07", custom_name="Kingston Black")
    view = ReconciliationView([named, batch("2024-08")])
    view.set_search("kingston")
    assert names(view) == ["2024-07"]


def test_validation_filter_toggles(view):
    view.toggle_validation_filter("warning")
    assert names(view) == ["bravo"]
    view.toggle_validation_filter("warning")
    assert view.validation_filter is None
    assert len(view.rows()) == 3


def test_verified_filter(view):
    view.toggle_validation_filter("verified")
    assert names(view) == ["Charlie"]


def test_filters_combine(view):
    view.toggle_validation_filter("warning")
    view.set_ttb_filter("drift")
    assert names(view) == ["bravo"]
    view.set_ttb_filter("identity")
    assert names(view) == []
    view.set_ttb_filter("all")
    assert view.ttb_filter is None
    assert names(view) == ["bravo"]


@pytest.mark.parametrize("value,expected", [
    ("identity", ["Charlie"]),
    ("drift", ["bravo"]),
    ("initial_anomaly", []),
    ("capacity", ["Charlie"]),
])
def test_ttb_filters(view, value, expected):
    assert value in TTB_FILTERS
    view.set_ttb_filter(value)
    assert names(view) == expected


def test_unknown_values_raise(view):
    with pytest.raises(ValueError):
        view.sort_by("color")
    with pytest.raises(ValueError):
        view.set_ttb_filter("bogus")
    with pytest.raises(ValueError):
        view.toggle_validation_filter("bogus")


def test_counts(view):
    counts = view.summary_counts()
    assert counts["all"] == 3
    assert counts["pass"] == 1
    assert counts["warning"] == 1
    assert counts["fail"] == 1
    assert counts["verified"] == 1
    assert counts["drift"] == 1
    assert counts["capacity"] == 1


def test_row_badges(view):
    rows = {r.batch.name: r for r in view.rows()}
    assert rows["Alpha"].identity_badge["label"] == "OK"
    assert rows["Charlie"].identity_badge["label"] == "FAIL"
    assert rows["bravo"].drift_badge["label"] == "FAIL"


def test_status_labels():
    assert status_label(batch("a")) == "Passing"
    assert status_label(batch("a", validation=None)) == "Passing"
    assert status_label(batch("a", validation=validation("warning", warnings=1))) == "1 warning"
    assert status_label(batch("a", validation=validation("warning", warnings=3))) == "3 warnings"
    assert status_label(batch("a", validation=validation("fail", fails=1))) == "1 issue"
    assert status_label(batch("a", validation=validation("fail", warnings=1, fails=2))) == "2 issues"


def test_verified_labels():
    verified = batch("a", verified_for_year=True)
    assert status_label(verified) == "Verified"
    assert status_label(verified, recon(verified, drift=-0.6)) == "Verified (drift)"
    overridden = batch("a", verified_for_year=True, validation=validation("warning", warnings=1))
    assert status_label(overridden) == "Verified (override)"
    assert status_label(overridden, recon(overridden, drift=1.0)) == "Verified (drift)"


def test_status_actions():
    assert status_actions(batch("a", verified_for_year=True)) == ["reset"]
    assert status_actions(batch("a")) == ["exclude", "duplicate", "reset"]
    warned = batch("a", validation=validation("warning", warnings=1))
    assert status_actions(warned)[0] == "force_verify"


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, ids, force, year):
        self.calls.append((ids, force, year))


def test_auto_verify_fires_once_per_key():
    batches = [batch("a"), batch("b"), batch("c", validation=validation("warning", warnings=1))]
    recons = {str(b.id): recon(b) for b in batches}
    verifier = AutoVerifier()
    verify = Recorder()
    start, end = date(2024, 12, 31), date(2025, 12, 31)

    first = verifier.maybe_verify(start, end, batches, recons, ReconciliationTotals(), False, verify)
    assert first.fired
    assert sorted(first.batch_ids) == sorted([str(batches[0].id), str(batches[1].id)])
    assert first.key == auto_verify_key(start, end, first.batch_ids)
    assert verify.calls == [(first.batch_ids, False, 2025)]

    second = verifier.maybe_verify(start, end, batches, recons, ReconciliationTotals(), False, verify)
    assert not second.fired
    assert len(verify.calls) == 1

    more = batches + [batch("d")]
    third = verifier.maybe_verify(start, end, more, recons, ReconciliationTotals(), False, verify)
    assert third.fired
    assert len(verify.calls) == 2


@pytest.mark.parametrize("totals,finalized", [
    (ReconciliationTotals(identity_check=0.3), False),
    (ReconciliationTotals(batches_with_drift=1), False),
    (ReconciliationTotals(batches_with_initial_anomaly=1), False),
    (ReconciliationTotals(vessel_capacity_warnings=2), False),
    (ReconciliationTotals(), True),
])
def test_auto_verify_gates(totals, finalized):
    batches = [batch("a")]
    recons = {str(batches[0].id): recon(batches[0])}
    verify = Recorder()
    decision = AutoVerifier().maybe_verify(
        date(2024, 12, 31), date(2025, 12, 31), batches, recons, totals, finalized, verify
    )
    assert not decision.fired
    assert verify.calls == []


def test_auto_verify_needs_data():
    verify = Recorder()
    verifier = AutoVerifier()
    assert not verifier.maybe_verify(date(2024, 12, 31), date(2025, 12, 31), [], {}, None, False, verify).fired
    only_verified = [batch("a", verified_for_year=True)]
    recons = {str(only_verified[0].id): recon(only_verified[0])}
    decision = verifier.maybe_verify(
        date(2024, 12, 31), date(2025, 12, 31), only_verified, recons, ReconciliationTotals(), False, verify
    )
    assert decision.reason == "no eligible batches"
    assert verify.calls == []
