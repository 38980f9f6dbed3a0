from fastapi.testclient import TestClient

from societyhub.api.dependencies import get_db
from societyhub.main import app
from societyhub.models.models import AuditLog, Flat, User


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


def _signup_payload(society_id, **overrides):
    payload = {
        "society_id": society_id,
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876500001",
        "flat_number": "A-101",
        "password": "secret123",
        "confirm_password": "secret123",
    }
    payload.update(overrides)
    return payload


def _login(client, email, password, society_id):
    return client.post(
        "/auth/login",
        data={"username": email, "password": password, "society_id": society_id},
    )


def test_signup_links_residents_of_the_same_flat(db_session, create_society):
    society = create_society()
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        first = client.post("/auth/signup", json=_signup_payload(society.id))
        assert first.status_code == 201
        assert first.json()["role"] == "RESIDENT"
        assert first.json()["flat_number"] == "A-101"

        second = client.post(
            "/auth/signup",
            json=_signup_payload(society.id, name="Bala Rao", email="bala@example.com"),
        )
        assert second.status_code == 201
        assert second.json()["flat_id"] == first.json()["flat_id"]

        flats = db_session.query(Flat).filter(Flat.society_id == society.id).all()
        assert len(flats) == 1
        assert flats[0].owner_user_id == first.json()["id"]
        assert db_session.query(AuditLog).filter(AuditLog.action == "user.signup").count() == 2
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_signup_validation_happens_before_any_write(db_session, create_society):
    society = create_society()
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        mismatch = client.post("/auth/signup", json=_signup_payload(society.id, confirm_password="other123"))
        assert mismatch.status_code == 422
        assert mismatch.json()["detail"] == "Validation failed."

        short = client.post("/auth/signup", json=_signup_payload(society.id, password="abc", confirm_password="abc"))
        assert short.status_code == 422

        blank_flat = client.post("/auth/signup", json=_signup_payload(society.id, flat_number="   "))
        assert blank_flat.status_code == 422

        assert db_session.query(User).count() == 0
        assert db_session.query(Flat).count() == 0
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_signup_rejects_duplicate_email_and_unknown_society(db_session, create_society, create_user):
    society = create_society()
    create_user(email="asha@example.com", society=society)
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        duplicate = client.post("/auth/signup", json=_signup_payload(society.id, email="ASHA@example.com"))
        assert duplicate.status_code == 400
        assert duplicate.json()["detail"] == "Email already registered"

        missing = client.post("/auth/signup", json=_signup_payload(society.id + 100))
        assert missing.status_code == 404
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_login_is_scoped_to_the_selected_society(db_session, create_society, create_user):
    green = create_society("Green Valley Residency")
    blue = create_society("Blue Ridge Towers")
    create_user(email="asha@example.com", society=green)
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        ok = _login(client, "asha@example.com", "changeme", green.id)
        assert ok.status_code == 200
        body = ok.json()
        assert body["token_type"] == "bearer"
        assert body["society"]["id"] == green.id
        assert body["user"]["email"] == "asha@example.com"

        wrong_society = _login(client, "asha@example.com", "changeme", blue.id)
        assert wrong_society.status_code == 401
        assert wrong_society.json()["detail"] == "Invalid credentials"

        wrong_password = _login(client, "asha@example.com", "nope", green.id)
        assert wrong_password.status_code == 401

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["flat_number"] == "A-101"
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_refresh_token_flow_returns_new_tokens(db_session, create_user):
    create_user(email="refresh@example.com")
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        society_id = db_session.query(User).first().society_id
        initial = _login(client, "refresh@example.com", "changeme", society_id).json()

        refreshed = client.post("/auth/refresh", json={"refresh_token": initial["refresh_token"]})
        assert refreshed.status_code == 200
        assert len(refreshed.json()["access_token"]) > 20

        access_as_refresh = client.post("/auth/refresh", json={"refresh_token": initial["access_token"]})
        assert access_as_refresh.status_code == 401
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_profile_update_moves_user_and_vehicles_to_new_flat(db_session, create_user):
    user = create_user(email="mover@example.com", flat_number="A-101")
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        token = _login(client, "mover@example.com", "changeme", user.society_id).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}
        created = client.post("/vehicles/", json={"number_plate": "mh12ab1234", "vehicle_type": "4-wheeler"}, headers=headers)
        assert created.status_code == 201

        response = client.patch("/auth/me", json={"flat_number": "B-202", "phone": "9000000000"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["flat_number"] == "B-202"
        assert response.json()["phone"] == "9000000000"

        vehicles = client.get("/vehicles/", headers=headers).json()
        assert [vehicle["number_plate"] for vehicle in vehicles] == ["MH12AB1234"]
        assert db_session.query(AuditLog).filter(AuditLog.action == "user.profile_update").count() == 1
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_change_password_requires_current_password(db_session, create_user):
    user = create_user(email="pw@example.com")
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        token = _login(client, "pw@example.com", "changeme", user.society_id).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        wrong = client.post(
            "/auth/me/change-password",
            json={"current_password": "wrong", "new_password": "newsecret"},
            headers=headers,
        )
        assert wrong.status_code == 400

        ok = client.post(
            "/auth/me/change-password",
            json={"current_password": "changeme", "new_password": "newsecret"},
            headers=headers,
        )
        assert ok.status_code == 200
        assert _login(client, "pw@example.com", "newsecret", user.society_id).status_code == 200
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_login_is_rate_limited(db_session, create_user):
    user = create_user(email="limited@example.com")
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        statuses = [
            _login(client, "limited@example.com", "wrong", user.society_id).status_code for _ in range(11)
        ]
        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429
    finally:
        client.close()
        app.dependency_overrides.clear()
