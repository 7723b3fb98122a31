from conftest import PASSWORD, login_mobile, register


def test_register_and_login_mobile(client):
    assert register(client, "ana@example.com", first_name="Ana").status_code == 201
    headers = login_mobile(client, "ana@example.com")

    me = client.get("/auth/me", headers=headers).get_json()
    assert me["email"] == "ana@example.com"
    assert me["roles"] == ["PLAYER"]
    assert me["has_signed_waiver"] is False
    assert me["active_membership"] is None


def test_register_rejects_weak_password_and_duplicates(client):
    resp = register(client, "bob@example.com", password="short")
    assert resp.status_code == 400
    assert resp.get_json()["details"]

    assert register(client, "bob@example.com").status_code == 201
    assert register(client, "BOB@example.com").status_code == 409


def test_invalid_credentials(client):
    register(client, "cy@example.com")
    resp = client.post("/auth/login", json={"email": "cy@example.com", "password": "Wrong1234"})
    assert resp.status_code == 401


def test_lockout_after_repeated_failures(client):
    register(client, "dee@example.com")
    for _ in range(4):
        client.post("/auth/login", json={"email": "dee@example.com", "password": "Wrong1234"})
    resp = client.post("/auth/login", json={"email": "dee@example.com", "password": "Wrong1234"})
    assert resp.status_code == 429

    # the correct password is refused while locked
    resp = client.post("/auth/login", json={"email": "dee@example.com", "password": PASSWORD})
    assert resp.status_code == 429
    assert resp.get_json()["retry_after_seconds"] > 0


def test_login_rate_limit(app, client):
    app.config["LOGIN_RATE_MAX_REQUESTS"] = 2
    for _ in range(2):
        client.post("/auth/login", json={"email": "x@example.com", "password": "nope"})
    resp = client.post("/auth/login", json={"email": "x@example.com", "password": "nope"})
    assert resp.status_code == 429


def test_cookie_session_requires_csrf(client):
    register(client, "eve@example.com")
    resp = client.post("/auth/login", json={"email": "eve@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    assert "access_token" not in resp.get_json()

    # the test client keeps the session and csrf cookies
    assert client.get("/auth/me").status_code == 200
    assert client.post("/auth/waiver", json={"accepted": True}).status_code == 403

    csrf = client.get_cookie("csrf_token").value
    resp = client.post("/auth/waiver", json={"accepted": True}, headers={"X-CSRF-Token": csrf})
    assert resp.status_code == 200


def test_bearer_requests_skip_csrf(client, make_player):
    headers = make_player(waiver=False)
    resp = client.put("/auth/profile", json={"phone_number": "+52 555 0101"}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["profile"]["phone_number"] == "+52 555 0101"


def test_waiver_must_be_accepted(client, make_player):
    headers = make_player(waiver=False)
    assert client.post("/auth/waiver", json={}, headers=headers).status_code == 400
    assert client.post("/auth/waiver", json={"accepted": True}, headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).get_json()["has_signed_waiver"] is True


def test_logout_revokes_token(client, make_player):
    headers = make_player()
    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_logout_all(client, make_player):
    first = make_player()
    second = login_mobile(client, "player@example.com")
    resp = client.post("/auth/logout_all", headers=first)
    assert resp.get_json()["revoked_sessions"] == 2
    assert client.get("/auth/me", headers=second).status_code == 401


def test_change_password(client, make_player):
    headers = make_player()
    bad = client.post("/auth/change_password", json={"current_password": "nope", "new_password": "Newpass123"},
                      headers=headers)
    assert bad.status_code == 401
    ok = client.post("/auth/change_password", json={"current_password": PASSWORD, "new_password": "Newpass123"},
                     headers=headers)
    assert ok.status_code == 200
    login_mobile(client, "player@example.com", password="Newpass123")


def test_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
