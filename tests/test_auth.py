"""
Tests for the authentication endpoints (login, check, verify).

These tests verify:
  - Local and memory accounts can log in, with or without naming a realm
  - Wrong passwords, unknown users and unusable accounts are rejected with
    the same error (anti-enumeration)
  - Directory logins work once a DirectoryAuthenticator is installed, and
    leave a snapshot of the user behind
  - Directory logins stay inside the LDAP realm, and role or activity
    changes made in the directory reach the snapshot at the next login
  - /auth/check reflects the stored user, /auth/verify only the token
  - Forged, expired and garbage tokens are rejected
"""

from datetime import date, timedelta

import pytest
from jose import jwt

from userhub.exceptions import InvalidCredentialsError
from userhub.identity.principals import DirectoryPrincipal
from userhub.identity.roles import Realm, UserRole
from userhub.main import app
from userhub.security import create_access_token


MEMBER_PASSWORD = "SecurePass123!"
ADMIN_PASSWORD = "AdminPass123!"


class FakeDirectory:
    """
    DirectoryAuthenticator accepting a fixed set of accounts.

    accounts maps username -> (password, authorities[, enabled]); tests may
    change an entry between logins to simulate edits in the directory.
    """

    def __init__(self, accounts):
        self.accounts = accounts
        self.calls = []

    def authenticate(self, username, password):
        self.calls.append(username)
        entry = self.accounts.get(username)
        if entry is None or entry[0] != password:
            raise InvalidCredentialsError()
        enabled = entry[2] if len(entry) > 2 else True
        return DirectoryPrincipal(username, entry[1], enabled=enabled)


# ---------------------------------------------------------------------------
# Login Tests
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /auth/login."""

    def test_login_local_user(self, client, create_user):
        """A stored local user gets a token and their own data back."""
        create_user("alice", MEMBER_PASSWORD)
        response = client.post(
            "/auth/login", json={"username": "alice", "password": MEMBER_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["username"] == "alice"
        assert data["user"]["realm"] == "LOCAL"
        assert data["user"]["role"] == "DEFAULT"
        assert data["token"]["token_type"] == "bearer"
        assert data["token"]["token"]
        assert data["token"]["expiration"] is not None

    def test_login_with_explicit_realm(self, client, create_user):
        create_user("alice", MEMBER_PASSWORD)
        response = client.post(
            "/auth/login",
            json={"username": "alice", "password": MEMBER_PASSWORD, "realm": "LOCAL"},
        )
        assert response.status_code == 200

    def test_login_in_wrong_realm(self, client, create_user):
        """Naming a realm restricts the login to that realm."""
        create_user("alice", MEMBER_PASSWORD)
        response = client.post(
            "/auth/login",
            json={"username": "alice", "password": MEMBER_PASSWORD, "realm": "MEMORY"},
        )
        assert response.status_code == 401

    def test_login_memory_account(self, client):
        """Accounts from MEMORY_USERS log in without touching the database."""
        response = client.post(
            "/auth/login", json={"username": "gateway", "password": "GatewayPass123"}
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["realm"] == "MEMORY"
        assert user["role"] == "SERVICE"

    def test_local_user_shadowed_by_memory_account_name(self, client, create_user):
        """A local user sharing a memory account's name logs in with its own password."""
        create_user("gateway", MEMBER_PASSWORD)
        response = client.post(
            "/auth/login", json={"username": "gateway", "password": MEMBER_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["user"]["realm"] == "LOCAL"

    def test_login_wrong_password(self, client, create_user):
        create_user("alice", MEMBER_PASSWORD)
        response = client.post(
            "/auth/login", json={"username": "alice", "password": "WrongPassword!"}
        )
        assert response.status_code == 401
        assert response.json()["error_type"] == "invalid_credentials"

    def test_login_unknown_user(self, client):
        """Unknown users get exactly the same answer as wrong passwords."""
        response = client.post(
            "/auth/login", json={"username": "nobody", "password": "Whatever123"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    def test_login_inactive_user(self, client, create_user):
        create_user("alice", MEMBER_PASSWORD, active=False)
        response = client.post(
            "/auth/login", json={"username": "alice", "password": MEMBER_PASSWORD}
        )
        assert response.status_code == 401

    def test_login_expired_user(self, client, admin_headers, create_user):
        """An admin setting a past expiration date locks the user out."""
        create_user("alice", MEMBER_PASSWORD)
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        response = client.patch(
            "/users",
            json={"username": "alice", "realm": "LOCAL", "expiration_date": yesterday},
            headers=admin_headers,
        )
        assert response.status_code == 200

        response = client.post(
            "/auth/login", json={"username": "alice", "password": MEMBER_PASSWORD}
        )
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "body",
        [
            {"username": "alice"},
            {"password": "Whatever123"},
            {"username": "", "password": "Whatever123"},
            {"username": "alice", "password": "Whatever123", "realm": "NOWHERE"},
        ],
    )
    def test_login_invalid_body(self, client, body):
        response = client.post("/auth/login", json=body)
        assert response.status_code == 422


class TestDirectoryLogin:
    """Tests for LDAP logins through an installed DirectoryAuthenticator."""

    def test_no_directory_configured(self, client):
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        )
        assert response.status_code == 401

    def test_directory_login_stores_snapshot(self, client, admin_headers):
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_ADMIN"])})
        app.state.directory_authenticator = directory

        response = client.post(
            "/auth/login", json={"username": "dora", "password": "DirPass123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["realm"] == "LDAP"
        assert response.json()["user"]["role"] == "ADMIN"
        assert directory.calls == ["dora"]

        response = client.get("/users/LDAP", headers=admin_headers)
        assert [u["username"] for u in response.json()] == ["dora"]

    def test_directory_token_is_usable(self, client):
        app.state.directory_authenticator = FakeDirectory(
            {"dora": ("DirPass123", ["ROLE_DEFAULT"])}
        )
        token = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        ).json()["token"]["token"]

        response = client.get("/auth/check", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["user"]["realm"] == "LDAP"

    def test_directory_rejects_password(self, client):
        app.state.directory_authenticator = FakeDirectory(
            {"dora": ("DirPass123", ["ROLE_DEFAULT"])}
        )
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "nope", "realm": "LDAP"},
        )
        assert response.status_code == 401

    def test_directory_user_without_role(self, client):
        """A directory account with no role cannot log in."""
        app.state.directory_authenticator = FakeDirectory({"dora": ("DirPass123", [])})
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        )
        assert response.status_code == 401

    @pytest.mark.parametrize("authorities", [[], ["ROLE_DEFAULT", "ROLE_ADMIN"]])
    def test_directory_login_never_yields_another_realms_user(
        self, client, create_user, authorities
    ):
        """A directory login without a usable role must not pick up a same-named LOCAL admin."""
        create_user("alice", ADMIN_PASSWORD, role=UserRole.ADMIN)
        app.state.directory_authenticator = FakeDirectory(
            {"alice": ("DirPass123", authorities)}
        )
        for body in (
            {"username": "alice", "password": "DirPass123", "realm": "LDAP"},
            {"username": "alice", "password": "DirPass123"},
        ):
            response = client.post("/auth/login", json=body)
            assert response.status_code == 401

    def test_directory_user_without_role_uses_own_snapshot(self, client):
        """Once a snapshot exists, a role-less directory login takes the role from it."""
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_ADMIN"])})
        app.state.directory_authenticator = directory
        body = {"username": "dora", "password": "DirPass123", "realm": "LDAP"}
        assert client.post("/auth/login", json=body).status_code == 200

        directory.accounts["dora"] = ("DirPass123", [])
        response = client.post("/auth/login", json=body)
        assert response.status_code == 200
        assert response.json()["user"]["realm"] == "LDAP"
        assert response.json()["user"]["role"] == "ADMIN"

    def test_directory_demotion_takes_effect(self, client, login):
        """A role lowered in the directory is applied to the stored snapshot at next login."""
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_ADMIN"])})
        app.state.directory_authenticator = directory
        admin_token = login("dora", "DirPass123", realm="LDAP")
        assert client.get("/users", headers=admin_token).status_code == 200

        directory.accounts["dora"] = ("DirPass123", ["ROLE_DEFAULT"])
        headers = login("dora", "DirPass123", realm="LDAP")

        response = client.get("/auth/check", headers=headers)
        assert response.json()["user"]["role"] == "DEFAULT"
        # Old and new tokens resolve to the same, demoted snapshot
        assert client.get("/users", headers=headers).status_code == 403
        assert client.get("/users", headers=admin_token).status_code == 403

    def test_directory_disable_takes_effect(self, client, login):
        """A user disabled in the directory can neither log in nor use an earlier token."""
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_ADMIN"])})
        app.state.directory_authenticator = directory
        headers = login("dora", "DirPass123", realm="LDAP")
        assert client.get("/auth/check", headers=headers).status_code == 200

        directory.accounts["dora"] = ("DirPass123", ["ROLE_ADMIN"], False)
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        )
        assert response.status_code == 401
        assert client.get("/auth/check", headers=headers).status_code == 401

    def test_directory_disable_without_role(self, client, login):
        """Activity comes from the directory even when the role comes from the snapshot."""
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_DEFAULT"])})
        app.state.directory_authenticator = directory
        headers = login("dora", "DirPass123", realm="LDAP")

        directory.accounts["dora"] = ("DirPass123", [], False)
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        )
        assert response.status_code == 401
        assert client.get("/auth/check", headers=headers).status_code == 401

    def test_directory_reenable_takes_effect(self, client, login):
        """Re-enabling in the directory restores access at the next login."""
        directory = FakeDirectory({"dora": ("DirPass123", ["ROLE_DEFAULT"], False)})
        app.state.directory_authenticator = directory
        response = client.post(
            "/auth/login",
            json={"username": "dora", "password": "DirPass123", "realm": "LDAP"},
        )
        assert response.status_code == 401

        directory.accounts["dora"] = ("DirPass123", ["ROLE_DEFAULT"])
        headers = login("dora", "DirPass123", realm="LDAP")
        assert client.get("/auth/check", headers=headers).status_code == 200


# ---------------------------------------------------------------------------
# Token Tests
# ---------------------------------------------------------------------------

class TestCheck:
    """Tests for GET /auth/check."""

    def test_check_returns_stored_user(self, client, member_headers):
        response = client.get("/auth/check", headers=member_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["username"] == "testuser"
        assert data["token"]["token"] == member_headers["Authorization"].split()[1]

    def test_check_without_token(self, client):
        response = client.get("/auth/check")
        assert response.status_code == 401

    def test_check_garbage_token(self, client):
        response = client.get("/auth/check", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_check_expired_token(self, client, create_user):
        create_user("alice", MEMBER_PASSWORD)
        token, _ = create_access_token(
            {"sub": "alice", "realm": "LOCAL", "role": "ROLE_DEFAULT"},
            expires_delta=timedelta(minutes=-1),
        )
        response = client.get("/auth/check", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_check_after_deactivation(self, client, admin_headers, member_headers):
        """Deactivation takes effect immediately, not when the token expires."""
        response = client.patch(
            "/users",
            json={"username": "testuser", "realm": "LOCAL", "is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert client.get("/auth/check", headers=member_headers).status_code == 401

    def test_check_after_deletion(self, client, admin_headers, member_headers):
        client.delete("/users/LOCAL/testuser", headers=admin_headers)
        assert client.get("/auth/check", headers=member_headers).status_code == 401

    def test_check_memory_account(self, client, login):
        headers = login("gateway", "GatewayPass123")
        response = client.get("/auth/check", headers=headers)
        assert response.status_code == 200
        assert response.json()["user"]["realm"] == "MEMORY"


class TestVerify:
    """Tests for GET /auth/verify."""

    def test_verify_reports_token_claims(self, client, create_user):
        create_user("boss", ADMIN_PASSWORD, role=UserRole.ADMIN)
        token = client.post(
            "/auth/login", json={"username": "boss", "password": ADMIN_PASSWORD}
        ).json()["token"]["token"]

        response = client.get("/auth/verify", params={"token": token})
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["username"] == "boss"
        assert user["realm"] == "LOCAL"
        assert user["role"] == "ADMIN"

    def test_verify_does_not_need_stored_user(self, client):
        """The user is rebuilt from the claims, so a token for a deleted user still verifies."""
        token, _ = create_access_token(
            {"sub": "ghost", "realm": Realm.LOCAL.value, "role": "ROLE_DEFAULT"}
        )
        response = client.get("/auth/verify", params={"token": token})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "ghost"

    def test_verify_token_without_realm(self, client):
        token, _ = create_access_token({"sub": "alice", "role": "ROLE_DEFAULT"})
        response = client.get("/auth/verify", params={"token": token})
        assert response.status_code == 400
        assert response.json()["error_type"] == "missing_data"

    def test_verify_token_without_role(self, client):
        token, _ = create_access_token({"sub": "alice", "realm": "LOCAL"})
        response = client.get("/auth/verify", params={"token": token})
        assert response.status_code == 400
        assert response.json()["error_type"] == "ambiguous_role"

    def test_verify_garbage_token(self, client):
        response = client.get("/auth/verify", params={"token": "garbage"})
        assert response.status_code == 401

    def test_verify_token_signed_with_other_key(self, client):
        token = jwt.encode(
            {"sub": "alice", "realm": "LOCAL", "role": "ROLE_DEFAULT"},
            "some-other-secret",
            algorithm="HS256",
        )
        response = client.get("/auth/verify", params={"token": token})
        assert response.status_code == 401


class TestHealth:
    """Tests for GET /health."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
