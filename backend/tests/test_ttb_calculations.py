import pytest

from ciderhouse.services.ttb_calculations import (
    calculate_hard_cider_tax,
    calculate_reconciliation,
    check_badge,
    identity_check,
    is_drift_issue,
    is_identity_issue,
)


def test_identity_balances():
    value = identity_check(opening=100, production=50, losses=5, sales=20, distillation=0, ending=125)
    assert value == 0
    assert check_badge(value, 0.25) == {"label": "OK", "ok": True, "magnitude": 0}


def test_identity_failure_badge():
    value = identity_check(opening=100, production=50, losses=5, sales=20, distillation=0, ending=130)
    assert value == -5
    badge = check_badge(value, 0.25)
    assert badge["label"] == "FAIL"
    assert badge["ok"] is False
    assert badge["magnitude"] == 5


def test_identity_with_internal_flows():
    value = identity_check(10, 0, 0, 0, 0, 12, inflows=3, outflows=1)
    assert value == 0


def test_tolerances_are_inclusive_failures():
    assert not is_identity_issue(0.249)
    assert is_identity_issue(0.25)
    assert is_identity_issue(-0.3)
    assert not is_drift_issue(0.49)
    assert is_drift_issue(-0.5)


def test_calculate_reconciliation():
    result = calculate_reconciliation(opening=100, production=50, removals=20, losses=5, ending=125)
    assert result["total_available"] == 150
    assert result["total_accounted"] == 150
    assert result["variance"] == 0
    assert result["is_balanced"]

    off = calculate_reconciliation(opening=100, production=50, removals=20, losses=5, ending=124.5)
    assert off["variance"] == 0.5
    assert not off["is_balanced"]


def test_hard_cider_tax_small_producer_credit():
    tax = calculate_hard_cider_tax(1000)
    assert tax["gross_tax"] == pytest.approx(226.0)
    assert tax["small_producer_credit"] == pytest.approx(56.0)
    assert tax["net_tax_due"] == pytest.approx(170.0)


def test_hard_cider_tax_credit_capped():
    tax = calculate_hard_cider_tax(40000)
    assert tax["small_producer_credit"] == pytest.approx(30000 * 0.056)
    assert tax["net_tax_due"] == pytest.approx(40000 * 0.226 - 30000 * 0.056)


def test_hard_cider_tax_negative_is_zero():
    assert calculate_hard_cider_tax(-10)["net_tax_due"] == 0
