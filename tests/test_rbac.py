from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from societyhub.auth.jwt import get_current_user, require_admin, require_roles


class DummyUser:
    def __init__(self, role: str):
        self.role = role

    def has_any_role(self, *role_names: str) -> bool:
        return self.role in role_names


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/committee")
    def committee_route(_: object = Depends(require_admin)):
        return {"ok": True}

    @app.get("/roles")
    def roles_route(_: object = Depends(require_roles("CHAIRMAN"))):
        return {"ok": True}

    return app


def test_committee_route_requires_chairman_or_secretary():
    app = _build_app()
    client = TestClient(app)

    app.dependency_overrides[get_current_user] = lambda: DummyUser("RESIDENT")
    response = client.get("/committee")
    assert response.status_code == 403

    app.dependency_overrides[get_current_user] = lambda: DummyUser("SECRETARY")
    response = client.get("/committee")
    assert response.status_code == 200

    app.dependency_overrides[get_current_user] = lambda: DummyUser("CHAIRMAN")
    response = client.get("/committee")
    assert response.status_code == 200


def test_role_route_allows_only_chairman():
    app = _build_app()
    client = TestClient(app)

    app.dependency_overrides[get_current_user] = lambda: DummyUser("SECRETARY")
    response = client.get("/roles")
    assert response.status_code == 403

    app.dependency_overrides[get_current_user] = lambda: DummyUser("CHAIRMAN")
    response = client.get("/roles")
    assert response.status_code == 200


def test_token_from_another_society_is_rejected(db_session, create_society, create_user):
    from societyhub.api.dependencies import get_db
    from societyhub.auth.jwt import create_access_token
    from societyhub.main import app

    green = create_society("Green Valley Residency")
    blue = create_society("Blue Ridge Towers")
    user = create_user(email="asha@example.com", society=green)
    forged = create_access_token({"sub": str(user.id), "society_id": str(blue.id), "role": "CHAIRMAN", "type": "access"})

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    client = TestClient(app)
    try:
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_chairman_changes_member_role_but_keeps_one_chairman(db_session, create_user):
    from societyhub.api.dependencies import get_db
    from societyhub.main import app

    chairman = create_user(email="chair@example.com", role_name="CHAIRMAN", flat_number="C-001")
    resident = create_user(email="resident@example.com")

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_user] = lambda: chairman
    client = TestClient(app)
    try:
        promoted = client.patch(f"/auth/users/{resident.id}/role", json={"role": "SECRETARY"})
        assert promoted.status_code == 200
        assert promoted.json()["role"] == "SECRETARY"

        demote_self = client.patch(f"/auth/users/{chairman.id}/role", json={"role": "RESIDENT"})
        assert demote_self.status_code == 400

        members = client.get("/auth/users")
        assert {member["email"] for member in members.json()} == {"chair@example.com", "resident@example.com"}
    finally:
        client.close()
        app.dependency_overrides.clear()
