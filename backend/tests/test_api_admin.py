"""
API tests for the admin endpoints: user management and the audit trail.
"""

from datetime import timedelta, timezone

import pytest

from core.clock import as_utc
from models.audit_log import AuditLog
from models.user import User


def get_user(db, username):
    db.expire_all()
    return db.query(User).filter(User.username == username).one()


class TestAccess:
    @pytest.mark.parametrize("method, path", [
        ("get", "/api/users"),
        ("get", "/api/audit-logs"),
        ("get", "/api/users/verification-link?email=a@x.com"),
        ("delete", "/api/users/1"),
        ("put", "/api/users/1/unlock"),
        ("put", "/api/users/1/verify"),
    ])
    def test_staff_is_forbidden(self, client, staff_headers, method, path):
        resp = getattr(client, method)(path, headers=staff_headers)

        assert resp.status_code == 403
        assert resp.json()["detail"] == "Access denied: Admin only"

    def test_anonymous_is_401(self, client):
        assert client.get("/api/users").status_code == 401

    def test_role_read_from_database(self, client, make_user, login_headers, db_session):
        """Demoting an admin takes effect immediately, even with an old token."""
        make_user("carol", role="admin")
        headers = login_headers("carol")
        assert client.get("/api/users", headers=headers).status_code == 200

        user = get_user(db_session, "carol")
        user.role = "staff"
        db_session.commit()

        assert client.get("/api/users", headers=headers).status_code == 403


class TestUsers:
    def test_list_users(self, client, admin_headers, make_user):
        make_user("bob")
        resp = client.get("/api/users", headers=admin_headers)

        assert resp.status_code == 200
        users = resp.json()["users"]
        assert {u["username"] for u in users} == {"root", "bob"}
        assert all("password_hash" not in u for u in users)

    def test_delete_user(self, client, admin_headers, make_user, db_session):
        bob = make_user("bob")
        resp = client.delete(f"/api/users/{bob.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json() == {"message": "User deleted successfully"}
        db_session.expire_all()
        assert db_session.query(User).filter(User.username == "bob").first() is None

    def test_cannot_delete_self(self, client, admin_headers, db_session):
        root = get_user(db_session, "root")
        resp = client.delete(f"/api/users/{root.id}", headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot delete your own account"

    def test_delete_unknown_is_404(self, client, admin_headers):
        assert client.delete("/api/users/9999", headers=admin_headers).status_code == 404

    def test_change_role(self, client, admin_headers, make_user, db_session):
        bob = make_user("bob")
        resp = client.put(f"/api/users/{bob.id}/role", json={"role": "admin"}, headers=admin_headers)

        assert resp.status_code == 200
        assert get_user(db_session, "bob").role == "admin"

    def test_change_role_invalid(self, client, admin_headers, make_user):
        bob = make_user("bob")
        resp = client.put(f"/api/users/{bob.id}/role", json={"role": "owner"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_cannot_change_own_role(self, client, admin_headers, db_session):
        root = get_user(db_session, "root")
        resp = client.put(f"/api/users/{root.id}/role", json={"role": "staff"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot change your own role"

    def test_reset_password(self, client, admin_headers, make_user):
        bob = make_user("bob")
        resp = client.put(
            f"/api/users/{bob.id}/reset-password",
            json={"new_password": "brandnew1"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        login = client.post("/api/auth/login", json={"username": "bob", "password": "brandnew1"})
        assert login.status_code == 200

    def test_reset_password_too_short(self, client, admin_headers, make_user):
        bob = make_user("bob")
        resp = client.put(
            f"/api/users/{bob.id}/reset-password",
            json={"new_password": "123"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "new_password"

    def test_unlock(self, client, admin_headers, make_user, db_session):
        bob = make_user("bob")
        for _ in range(5):
            client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})
        assert get_user(db_session, "bob").locked_until is not None

        resp = client.put(f"/api/users/{bob.id}/unlock", headers=admin_headers)

        assert resp.status_code == 200
        user = get_user(db_session, "bob")
        assert user.locked_until is None
        assert user.failed_login_attempts == 0

    def test_manual_verify(self, client, admin_headers, mailer, db_session):
        client.post("/api/auth/register", json={"username": "alice", "email": "a@x.com", "password": "secret1"})
        alice = get_user(db_session, "alice")

        resp = client.put(f"/api/users/{alice.id}/verify", headers=admin_headers)

        assert resp.status_code == 200
        login = client.post("/api/auth/login", json={"username": "alice", "password": "secret1"})
        assert login.status_code == 200


class TestVerificationLink:
    def test_returns_link_for_pending_account(self, client, admin_headers, mailer):
        mailer.deliver = False
        client.post("/api/auth/register", json={"username": "alice", "email": "a@x.com", "password": "secret1"})

        resp = client.get("/api/users/verification-link", params={"email": "a@x.com"}, headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["username"] == "alice"
        assert body["verification_link"] == f"http://app.test/verify-email/{mailer.last_token()}"

    def test_verified_account_has_no_link(self, client, admin_headers):
        resp = client.get("/api/users/verification-link", params={"email": "root@example.com"}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["verification_link"] is None
        assert resp.json()["message"] == "Email already verified or no token found"

    def test_unknown_email_is_404(self, client, admin_headers):
        resp = client.get("/api/users/verification-link", params={"email": "x@x.com"}, headers=admin_headers)
        assert resp.status_code == 404


class TestAuditLogs:
    def test_lists_events_newest_first(self, client, admin_headers, make_user):
        bob = make_user("bob")
        client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})
        client.put(f"/api/users/{bob.id}/unlock", headers=admin_headers)

        logs = client.get("/api/audit-logs", headers=admin_headers).json()["logs"]

        assert [row["action"] for row in logs[:2]] == ["unlock_user", "login_failed"]
        assert logs[0]["actor"] == "root"
        assert logs[0]["target"] == "bob"

    def test_filter_by_action(self, client, admin_headers, make_user):
        make_user("bob")
        client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})

        logs = client.get("/api/audit-logs", params={"action": "login_failed"}, headers=admin_headers).json()["logs"]

        assert len(logs) == 1
        assert logs[0]["target"] == "bob"

    def test_limit(self, client, admin_headers, make_user):
        make_user("bob")
        for _ in range(3):
            client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})

        logs = client.get("/api/audit-logs", params={"limit": 2}, headers=admin_headers).json()["logs"]
        assert len(logs) == 2

    def test_time_window_with_utc_offset(self, client, admin_headers, db_session):
        db_session.expire_all()
        newest = db_session.query(AuditLog).order_by(AuditLog.id.desc()).first()
        # Same instant as one second before the row, written at +02:00
        bound = (as_utc(newest.created_at) - timedelta(seconds=1)).astimezone(timezone(timedelta(hours=2)))

        after = client.get("/api/audit-logs", params={"since": bound.isoformat()}, headers=admin_headers)
        before = client.get("/api/audit-logs", params={"until": bound.isoformat()}, headers=admin_headers)

        assert after.status_code == 200
        assert newest.id in [row["id"] for row in after.json()["logs"]]
        assert newest.id not in [row["id"] for row in before.json()["logs"]]

    def test_rows_survive_user_deletion(self, client, admin_headers, make_user, db_session):
        bob = make_user("bob")
        client.post("/api/auth/login", json={"username": "bob", "password": "wrong"})
        client.delete(f"/api/users/{bob.id}", headers=admin_headers)

        db_session.expire_all()
        failed = db_session.query(AuditLog).filter(AuditLog.action == "login_failed").one()
        assert failed.target_user_id is None
        assert db_session.query(AuditLog).filter(AuditLog.action == "delete_user").count() == 1
