def test_login_and_me(client, admin_user):
    response = client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "password123"})
    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"

    me = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "admin@example.com"
    assert me.json()["role"] == "admin"


def test_login_wrong_password(client, admin_user):
    response = client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert response.status_code == 401


def test_refresh_token(client, admin_user):
    tokens = client.post(
        "/v1/auth/login", json={"email": "admin@example.com", "password": "password123"}
    ).json()
    response = client.post("/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200

    # An access token is not accepted as a refresh token
    response = client.post("/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


def test_requires_token(client):
    response = client.get("/v1/vessels/")
    assert response.status_code in (401, 403)


def test_admin_manages_users(client, admin_headers, viewer_headers):
    payload = {"email": "cellar@example.com", "name": "Cellar", "password": "longenough", "role": "operator"}
    response = client.post("/v1/auth/users", json=payload, headers=admin_headers)
    assert response.status_code == 200
    user_id = response.json()["id"]

    duplicate = client.post("/v1/auth/users", json=payload, headers=admin_headers)
    assert duplicate.status_code == 400

    forbidden = client.get("/v1/auth/users", headers=viewer_headers)
    assert forbidden.status_code == 403

    updated = client.patch(f"/v1/auth/users/{user_id}", json={"is_active": False}, headers=admin_headers)
    assert updated.json()["is_active"] is False

    login = client.post("/v1/auth/login", json={"email": "cellar@example.com", "password": "longenough"})
    assert login.status_code == 401
