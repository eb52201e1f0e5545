from datetime import datetime
import base64
import csv
import io

import pytest

from ciderhouse.models import PackagingKind, PackagingRun


@pytest.fixture
def cellar(db, make_vessel, make_batch):
    tank = make_vessel("T1", 1000.0)
    keg = make_vessel("T2", 400.0)
    good = make_batch("Good", vessel=tank, volume_l=470.0, initial_volume_l=500.0, actual_abv=6.5)
    db.add(PackagingRun(batch_id=good.id, kind=PackagingKind.bottling, volume_taken_l=30.0,
                        loss_l=0.0, units_produced=40, packaged_at=datetime(2024, 6, 1)))
    drifted = make_batch("Drifted", vessel=keg, volume_l=90.0, initial_volume_l=100.0,
                         start=datetime(2024, 4, 1), actual_abv=7.0)
    db.commit()
    return good, drifted


def test_reconciliation_summary(client, viewer_headers, cellar):
    response = client.get("/v1/ttb/reconciliation", params={"year": 2024}, headers=viewer_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["period_label"] == "2024"
    assert len(body["batches"]) == 2
    assert body["totals"]["batches_with_drift"] == 1


def test_invalid_period_falls_back_to_annual(client, viewer_headers, cellar):
    body = client.get("/v1/ttb/reconciliation", params={"year": 2024, "period": "q7"},
                      headers=viewer_headers).json()
    assert body["period"] == "annual"


def test_reconciliation_view(client, viewer_headers, cellar):
    body = client.get(
        "/v1/ttb/reconciliation/view",
        params={"year": 2024, "period": "q2", "sort_field": "name", "sort_direction": "desc"},
        headers=viewer_headers,
    ).json()
    assert body["period_query"] == "year=2024&period=q2"
    assert body["sort_direction"] == "desc"
    assert [r["batch"]["name"] for r in body["rows"]] == ["Good", "Drifted"]
    assert body["counts"]["drift"] == 1

    drift_only = client.get(
        "/v1/ttb/reconciliation/view", params={"year": 2024, "ttb_filter": "drift"}, headers=viewer_headers
    ).json()
    assert [r["batch"]["name"] for r in drift_only["rows"]] == ["Drifted"]
    assert drift_only["rows"][0]["drift_badge"]["label"] == "FAIL"


def test_reconciliation_view_rejects_unknown_filter(client, viewer_headers, cellar):
    response = client.get("/v1/ttb/reconciliation/view", params={"ttb_filter": "bogus"}, headers=viewer_headers)
    assert response.status_code == 400


def test_auto_verify_blocked_by_drift(client, admin_headers, cellar):
    body = client.post("/v1/ttb/reconciliation/auto-verify", params={"year": 2024},
                       headers=admin_headers).json()
    assert body["fired"] is False
    assert body["reason"] == "batch-level reconciliation issues"


def test_auto_verify_fires_when_clean(client, admin_headers, db, cellar):
    _, drifted = cellar
    drifted.current_volume_l = 100.0
    db.commit()

    body = client.post("/v1/ttb/reconciliation/auto-verify", params={"year": 2024},
                       headers=admin_headers).json()
    assert body["fired"] is True
    assert len(body["verified"]) == 2

    again = client.post("/v1/ttb/reconciliation/auto-verify", params={"year": 2024},
                        headers=admin_headers).json()
    assert again["fired"] is False


def test_validate_and_verify_and_status(client, admin_headers, cellar):
    good, drifted = cellar
    body = client.post(
        "/v1/ttb/reconciliation/validate-and-verify",
        json={"batch_ids": [str(good.id), str(drifted.id)], "year": 2024},
        headers=admin_headers,
    ).json()
    assert body["verified"] == [str(good.id)]
    assert body["blocked"][0]["batch_id"] == str(drifted.id)

    status = client.post(
        "/v1/ttb/reconciliation/status",
        json={"batch_ids": [str(drifted.id)], "status": "excluded"},
        headers=admin_headers,
    ).json()
    assert status == {"updated": 1, "status": "excluded"}

    summary = client.get("/v1/ttb/reconciliation", params={"year": 2024}, headers=admin_headers).json()
    assert [b["name"] for b in summary["batches"]] == ["Good"]


def test_export_csv(client, viewer_headers, cellar):
    response = client.get("/v1/ttb/reconciliation/export", params={"year": 2024}, headers=viewer_headers)
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="batch-reconciliation-2024-annual.csv"' in response.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Batch Reconciliation - 2024"]


def test_form_512017(client, viewer_headers, cellar):
    form = client.get("/v1/ttb/form-5120-17", params={"year": 2024, "period": "q2"}, headers=viewer_headers).json()
    assert form["period_label"] == "Q2 2024"
    assert form["period_type"] == "quarterly"
    assert form["removed_taxpaid"] == pytest.approx(7.925)

    pdf = client.get("/v1/ttb/form-5120-17/pdf", params={"year": 2024}, headers=viewer_headers).json()
    assert pdf["content_type"] == "application/pdf"
    assert base64.b64decode(pdf["data_base64"]).startswith(b"%PDF")


def test_finalize_period(client, admin_headers, operator_headers, cellar):
    forbidden = client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=operator_headers)
    assert forbidden.status_code == 403

    unknown = client.post("/v1/ttb/periods/finalize", json={"year": 2024, "period": "h1"}, headers=admin_headers)
    assert unknown.status_code == 400

    response = client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "finalized"

    again = client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["error"] == "period_finalized"

    periods = client.get("/v1/ttb/periods", headers=admin_headers).json()
    assert len(periods) == 1

    good, _ = cellar
    locked = client.post(
        "/v1/ttb/reconciliation/status",
        json={"batch_ids": [str(good.id)], "status": "verified", "year": 2024},
        headers=admin_headers,
    )
    assert locked.status_code == 409


def test_status_changes_need_admin(client, operator_headers, cellar):
    good, _ = cellar
    status = client.post(
        "/v1/ttb/reconciliation/status",
        json={"batch_ids": [str(good.id)], "status": "excluded"},
        headers=operator_headers,
    )
    assert status.status_code == 403

    verify = client.post(
        "/v1/ttb/reconciliation/validate-and-verify",
        json={"batch_ids": [str(good.id)], "year": 2024},
        headers=operator_headers,
    )
    assert verify.status_code == 403

    auto = client.post("/v1/ttb/reconciliation/auto-verify", params={"year": 2024}, headers=operator_headers)
    assert auto.status_code == 403


def test_auto_verify_skips_quarter_of_finalized_year(client, admin_headers, db, cellar):
    _, drifted = cellar
    drifted.current_volume_l = 100.0
    db.commit()
    client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=admin_headers)

    for _ in range(2):
        response = client.post("/v1/ttb/reconciliation/auto-verify", params={"year": 2024, "period": "q1"},
                               headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["fired"] is False
        assert response.json()["reason"] == "period finalized"


def test_reopen_period_unlocks_year(client, admin_headers, operator_headers, cellar):
    good, _ = cellar
    client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=admin_headers)

    forbidden = client.post("/v1/ttb/periods/reopen", json={"year": 2024}, headers=operator_headers)
    assert forbidden.status_code == 403

    reopened = client.post("/v1/ttb/periods/reopen", json={"year": 2024}, headers=admin_headers)
    assert reopened.status_code == 200
    assert reopened.json()["status"] == "draft"
    assert client.get("/v1/ttb/periods", headers=admin_headers).json() == []

    status = client.post(
        "/v1/ttb/reconciliation/status",
        json={"batch_ids": [str(good.id)], "status": "verified", "year": 2024},
        headers=admin_headers,
    )
    assert status.status_code == 200

    again = client.post("/v1/ttb/periods/reopen", json={"year": 2024}, headers=admin_headers)
    assert again.status_code == 400

    refinalized = client.post("/v1/ttb/periods/finalize", json={"year": 2024}, headers=admin_headers)
    assert refinalized.json()["status"] == "finalized"


def test_reconciliation_view_scope_filters(client, viewer_headers, cellar):
    def view(**params):
        return client.get("/v1/ttb/reconciliation/view", params={"year": 2024, **params},
                          headers=viewer_headers).json()

    default = view()
    assert default["sort_field"] == "start_date"
    assert default["sort_direction"] == "asc"
    assert [r["batch"]["name"] for r in default["rows"]] == ["Good", "Drifted"]

    newest_first = view(sort_field="start_date", sort_direction="desc")
    assert [r["batch"]["name"] for r in newest_first["rows"]] == ["Drifted", "Good"]

    searched = view(search="drift")
    assert [r["batch"]["name"] for r in searched["rows"]] == ["Drifted"]
    assert searched["counts"]["all"] == 1

    assert view(product_type="perry")["rows"] == []
    assert len(view(product_type="cider", reconciliation_status="pending")["rows"]) == 2

    bad = client.get("/v1/ttb/reconciliation/view", params={"product_type": "wine"}, headers=viewer_headers)
    assert bad.status_code == 400
