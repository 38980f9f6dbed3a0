from fastapi.testclient import TestClient

from societyhub.api.dependencies import get_db
from societyhub.auth.jwt import get_current_user
from societyhub.main import app
from societyhub.models.models import AuditLog
from societyhub.services.audit import audit_log


def _override_get_db(session):
    def _generator():
        try:
            yield session
        finally:
            pass

    return _generator


def _override_user(user):
    def _provider():
        return user

    return _provider


def test_role_change_writes_audit_log(db_session, create_user):
    """Promoting a member should emit an audit_log row."""
    chairman = create_user(email="chair@example.com", role_name="CHAIRMAN", flat_number="C-001")
    member = create_user(email="member@example.com")
    app.dependency_overrides[get_db] = _override_get_db(db_session)
    app.dependency_overrides[get_current_user] = _override_user(chairman)
    client = TestClient(app)

    try:
        response = client.patch(f"/auth/users/{member.id}/role", json={"role": "SECRETARY"})
        assert response.status_code == 200

        logs = (
            db_session.query(AuditLog)
            .filter(AuditLog.action == "user.role_update", AuditLog.target_entity_type == "User")
            .all()
        )
        assert len(logs) == 1
        entry = logs[0]
        assert entry.actor_user_id == chairman.id
        assert entry.society_id == chairman.society_id
        assert "SECRETARY" in (entry.after or "")
    finally:
        client.close()
        app.dependency_overrides.clear()


def test_audit_log_listing_is_admin_only_and_society_scoped(db_session, create_society, create_user):
    green = create_society("Green Valley Residency")
    blue = create_society("Blue Ridge Towers")
    secretary = create_user(email="sec@example.com", role_name="SECRETARY", society=green)
    resident = create_user(email="resident@example.com", society=green, flat_number="A-102")
    audit_log(db_session, secretary.id, "notice.delete", "Notice", "1", society_id=green.id)
    audit_log(db_session, None, "notice.delete", "Notice", "2", society_id=blue.id)

    app.dependency_overrides[get_db] = _override_get_db(db_session)
    client = TestClient(app)
    try:
        app.dependency_overrides[get_current_user] = _override_user(resident)
        assert client.get("/audit-logs/").status_code == 403

        app.dependency_overrides[get_current_user] = _override_user(secretary)
        response = client.get("/audit-logs/", params={"action": "notice.delete"})
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["target_entity_id"] == "1"
        assert body["items"][0]["actor"]["email"] == "sec@example.com"
    finally:
        client.close()
        app.dependency_overrides.clear()
