from vehiculos.core.cache import cache_client


def _register(client, email="new@example.com", password="supersecret"):
    return client.post(
        "/api/v1/auth/register",
        json={"email": email, "password": password, "first_name": "Nia", "last_name": "New"},
    )


def test_register_returns_user_and_tokens(client):
    response = _register(client)

    assert response.status_code == 201
    payload = response.json()
    assert payload["user"]["email"] == "new@example.com"
    assert payload["user"]["role"] == "customer"
    assert "password_hash" not in payload["user"]
    assert payload["tokens"]["token_type"] == "bearer"
    assert payload["tokens"]["expires_in"] == 15 * 60


def test_register_duplicate_email(client):
    response = _register(client, email="customer@example.com")

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "email_taken"


def test_register_validation_error(client):
    response = _register(client, password="short")

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "validation_error"


def test_login_and_profile(client):
    response = client.post("/api/v1/auth/login", json={"email": "Customer@Example.com", "password": "password123"})
    assert response.status_code == 200
    access_token = response.json()["tokens"]["access_token"]

    profile = client.get("/api/v1/auth/profile", headers={"Authorization": f"Bearer {access_token}"})
    assert profile.status_code == 200
    assert profile.json()["email"] == "customer@example.com"


def test_login_wrong_password(client):
    response = client.post("/api/v1/auth/login", json={"email": "customer@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"]["code"] == "unauthorized"


def test_login_inactive_user(client, session):
    from vehiculos.models import User

    user = session.query(User).filter(User.email == "other@example.com").one()
    user.is_active = False
    session.commit()

    response = client.post("/api/v1/auth/login", json={"email": "other@example.com", "password": "password123"})
    assert response.status_code == 401


def test_profile_requires_token(client):
    response = client.get("/api/v1/auth/profile")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_profile_rejects_garbage_token(client):
    response = client.get("/api/v1/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_refresh_rotates_tokens(client):
    tokens = _register(client).json()["tokens"]

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    rotated = response.json()
    assert rotated["refresh_token"] != tokens["refresh_token"]

    reused = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 401

    again = client.post("/api/v1/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
    assert again.status_code == 200


def test_refresh_rejects_access_token(client):
    tokens = _register(client).json()["tokens"]

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


def test_logout_revokes_tokens(client):
    tokens = _register(client).json()["tokens"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    response = client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

    assert client.get("/api/v1/auth/profile", headers=headers).status_code == 401
    refreshed = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 401


def test_update_profile(client, customer_headers):
    response = client.put(
        "/api/v1/auth/profile",
        json={"first_name": "Cleopatra", "email": "cleo@example.com"},
        headers=customer_headers,
    )

    assert response.status_code == 200
    assert response.json()["first_name"] == "Cleopatra"
    assert response.json()["email"] == "cleo@example.com"


def test_update_profile_email_clash(client, customer_headers):
    response = client.put("/api/v1/auth/profile", json={"email": "admin@example.com"}, headers=customer_headers)

    assert response.status_code == 409


def test_refresh_token_stored_in_cache(client):
    payload = _register(client).json()

    assert cache_client.get(f"refresh_token:{payload['user']['id']}") == payload["tokens"]["refresh_token"]
