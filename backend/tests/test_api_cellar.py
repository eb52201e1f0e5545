import pytest


def create_vessel(client, headers, **overrides):
    payload = {"name": "T1", "capacity": 1000, "capacity_unit": "L", "material": "stainless_steel"}
    payload.update(overrides)
    return client.post("/v1/vessels/", json=payload, headers=headers)


def create_batch(client, headers, vessel_id=None, **overrides):
    payload = {
        "name": "2024-KB",
        "initial_volume": 500,
        "unit": "L",
        "start_date": "2024-03-01T00:00:00",
        "vessel_id": vessel_id,
    }
    payload.update(overrides)
    return client.post("/v1/batches/", json=payload, headers=headers)


def test_vessel_capacity_in_gallons(client, operator_headers):
    response = create_vessel(client, operator_headers, name="Barrel 1", capacity=59, capacity_unit="gal",
                             working_capacity=55, material="wood", toast_level="medium")
    assert response.status_code == 201
    vessel = response.json()
    assert vessel["capacity_l"] == pytest.approx(223.339, abs=1e-3)
    assert vessel["working_capacity_l"] == pytest.approx(208.198, abs=1e-3)
    assert vessel["is_barrel"] is True
    assert vessel["status"] == "available"


@pytest.mark.parametrize("overrides", [
    {"material": "plastic", "jacketed": True},
    {"material": "glass", "is_pressure_vessel": True},
    {"material": "stainless_steel", "toast_level": "heavy"},
    {"working_capacity": 1200},
])
def test_vessel_material_rules(client, operator_headers, overrides):
    response = create_vessel(client, operator_headers, **overrides)
    assert response.status_code == 422


def test_duplicate_vessel_name(client, operator_headers):
    create_vessel(client, operator_headers)
    response = create_vessel(client, operator_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "vessel_state"


def test_vessel_update_checks_merged_material(client, operator_headers):
    vessel = create_vessel(client, operator_headers, name="Oak", material="wood", capacity=225).json()
    response = client.patch(f"/v1/vessels/{vessel['id']}", json={"jacketed": True}, headers=operator_headers)
    assert response.status_code == 409
    assert "stainless steel" in response.json()["detail"]

    ok = client.patch(f"/v1/vessels/{vessel['id']}", json={"location": "Barrel room"}, headers=operator_headers)
    assert ok.status_code == 200
    assert ok.json()["location"] == "Barrel room"


def test_barrel_origin_types(client, operator_headers):
    created = client.post("/v1/vessels/barrel-origin-types",
                          json={"name": "Ex-bourbon", "description": "American oak"}, headers=operator_headers)
    assert created.status_code == 201
    origin = created.json()

    duplicate = client.post("/v1/vessels/barrel-origin-types", json={"name": "Ex-bourbon"}, headers=operator_headers)
    assert duplicate.status_code == 400

    barrel = create_vessel(client, operator_headers, name="Barrel 7", capacity=225, material="wood",
                           barrel_origin_type_id=origin["id"]).json()
    assert barrel["barrel_origin_type_id"] == origin["id"]

    removed = client.delete(f"/v1/vessels/barrel-origin-types/{origin['id']}", headers=operator_headers)
    assert removed.status_code == 200
    assert client.get("/v1/vessels/barrel-origin-types", headers=operator_headers).json() == []
    assert client.get(f"/v1/vessels/{barrel['id']}", headers=operator_headers).json()["barrel_origin_type_id"] is None


def test_vessel_status_and_delete(client, operator_headers):
    vessel = create_vessel(client, operator_headers).json()
    batch = create_batch(client, operator_headers, vessel["id"]).json()

    status = client.put(f"/v1/vessels/{vessel['id']}/status", json={"status": "cleaning"}, headers=operator_headers)
    assert status.json()["status"] == "cleaning"

    blocked = client.delete(f"/v1/vessels/{vessel['id']}", headers=operator_headers)
    assert blocked.status_code == 409

    client.patch(f"/v1/batches/{batch['id']}", json={"status": "completed"}, headers=operator_headers)
    deleted = client.delete(f"/v1/vessels/{vessel['id']}", headers=operator_headers)
    assert deleted.status_code == 200


def test_liquid_map(client, operator_headers):
    tank = create_vessel(client, operator_headers).json()
    create_vessel(client, operator_headers, name="T2")
    create_batch(client, operator_headers, tank["id"], initial_volume=250)

    entries = {e["vessel_name"]: e for e in client.get("/v1/vessels/liquid-map", headers=operator_headers).json()}
    assert entries["T1"]["fill_percent"] == 25.0
    assert entries["T1"]["batch_name"] == "2024-KB"
    assert entries["T2"]["has_liquid"] is False


def test_batch_cannot_share_vessel(client, operator_headers):
    vessel = create_vessel(client, operator_headers).json()
    assert create_batch(client, operator_headers, vessel["id"]).status_code == 201
    second = create_batch(client, operator_headers, vessel["id"], name="2024-DAB")
    assert second.status_code == 409


def test_batch_lab_history(client, operator_headers):
    batch = create_batch(client, operator_headers, initial_volume=10, unit="gal").json()
    assert batch["initial_volume_l"] == pytest.approx(37.854)
    assert batch["current_volume_l"] == pytest.approx(37.854)

    measurement = client.post(
        f"/v1/batches/{batch['id']}/measurements",
        json={"specific_gravity": 1.002, "abv": 6.8, "temperature": 68, "temperature_unit": "F"},
        headers=operator_headers,
    )
    assert measurement.status_code == 201
    assert measurement.json()["temperature_c"] == pytest.approx(20.0)

    client.post(
        f"/v1/batches/{batch['id']}/additives",
        json={"additive_name": "Potassium metabisulfite", "amount": 2.5, "unit": "g"},
        headers=operator_headers,
    )
    history = client.get(f"/v1/batches/{batch['id']}/history", headers=operator_headers).json()
    assert history["batch"]["actual_abv"] == 6.8
    assert len(history["measurements"]) == 1
    assert history["additives"][0]["additive_name"] == "Potassium metabisulfite"


def test_batch_soft_delete(client, operator_headers):
    batch = create_batch(client, operator_headers).json()
    assert client.delete(f"/v1/batches/{batch['id']}", headers=operator_headers).status_code == 200
    assert client.get(f"/v1/batches/{batch['id']}", headers=operator_headers).status_code == 404

    listed = client.get("/v1/batches/", params={"include_deleted": True}, headers=operator_headers).json()
    assert listed["total"] == 1


def test_batch_validation_endpoint(client, operator_headers):
    batch = create_batch(client, operator_headers).json()
    result = client.get(f"/v1/batches/{batch['id']}/validation", params={"year": 2024},
                        headers=operator_headers).json()
    assert result["status"] == "warning"
    assert {c["check"] for c in result["checks"]} >= {"required_fields", "classification_data"}


def test_transfer_and_blend(client, operator_headers):
    t1 = create_vessel(client, operator_headers).json()
    t2 = create_vessel(client, operator_headers, name="T2").json()
    t3 = create_vessel(client, operator_headers, name="T3").json()
    create_batch(client, operator_headers, t1["id"])
    create_batch(client, operator_headers, t3["id"], name="2024-DAB", initial_volume=100)

    moved = client.post(
        "/v1/vessels/transfers",
        json={"from_vessel_id": t1["id"], "to_vessel_id": t2["id"], "volume": 200, "loss": 2},
        headers=operator_headers,
    ).json()
    assert moved["state"] == "committed"
    assert moved["remaining"] == pytest.approx(298.0)

    pending = client.post(
        "/v1/vessels/transfers",
        json={"from_vessel_id": t1["id"], "to_vessel_id": t3["id"], "volume": 50},
        headers=operator_headers,
    ).json()
    assert pending["state"] == "pending_confirmation"

    confirmed = client.post(
        "/v1/vessels/transfers/confirm",
        json={"confirmation_token": pending["confirmation_token"]},
        headers=operator_headers,
    ).json()
    assert confirmed["state"] == "committed"

    volumes = {e["vessel_name"]: e["current_volume_l"]
               for e in client.get("/v1/vessels/liquid-map", headers=operator_headers).json()}
    assert volumes == {"T1": pytest.approx(248.0), "T2": pytest.approx(200.0), "T3": pytest.approx(150.0)}


def test_transfer_errors_are_structured(client, operator_headers):
    t1 = create_vessel(client, operator_headers).json()
    t2 = create_vessel(client, operator_headers, name="T2").json()
    create_batch(client, operator_headers, t1["id"])

    response = client.post(
        "/v1/vessels/transfers",
        json={"from_vessel_id": t1["id"], "to_vessel_id": t2["id"], "volume": 600},
        headers=operator_headers,
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "transfer_invalid"
    assert body["context"]["current_volume_l"] == 500.0

    bad_token = client.post(
        "/v1/vessels/transfers/confirm", json={"confirmation_token": "garbage"}, headers=operator_headers
    )
    assert bad_token.status_code == 400


def test_transfer_accepts_utc_offset_timestamp(client, operator_headers):
    t1 = create_vessel(client, operator_headers).json()
    t2 = create_vessel(client, operator_headers, name="T2").json()
    create_batch(client, operator_headers, t1["id"])

    response = client.post(
        "/v1/vessels/transfers",
        json={"from_vessel_id": t1["id"], "to_vessel_id": t2["id"], "volume": 100,
              "transferred_at": "2024-05-01T10:00:00Z"},
        headers=operator_headers,
    )
    assert response.status_code == 200
    assert response.json()["state"] == "committed"


def test_blend_confirmation_cannot_be_replayed(client, operator_headers):
    t1 = create_vessel(client, operator_headers).json()
    t3 = create_vessel(client, operator_headers, name="T3").json()
    create_batch(client, operator_headers, t1["id"])
    create_batch(client, operator_headers, t3["id"], name="2024-DAB", initial_volume=100)

    token = client.post(
        "/v1/vessels/transfers",
        json={"from_vessel_id": t1["id"], "to_vessel_id": t3["id"], "volume": 50},
        headers=operator_headers,
    ).json()["confirmation_token"]

    first = client.post("/v1/vessels/transfers/confirm", json={"confirmation_token": token}, headers=operator_headers)
    assert first.status_code == 200
    second = client.post("/v1/vessels/transfers/confirm", json={"confirmation_token": token}, headers=operator_headers)
    assert second.status_code == 400
    assert second.json()["error"] == "transfer_invalid"

    volumes = {e["vessel_name"]: e["current_volume_l"]
               for e in client.get("/v1/vessels/liquid-map", headers=operator_headers).json()}
    assert volumes == {"T1": pytest.approx(450.0), "T3": pytest.approx(150.0)}
