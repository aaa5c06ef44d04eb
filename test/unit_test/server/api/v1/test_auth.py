import pyotp
import pytest
from httpx import AsyncClient

from indaba.core.events import activity_bus
from indaba.core.security import decode_access_token

pytestmark = pytest.mark.asyncio

BASE = "/api/v1/auth"


class TestRegister:
    async def test_register_creates_user_profile_and_token(self, client: AsyncClient):
        queue = activity_bus.subscribe()
        try:
            response = await client.post(
                f"{BASE}/register",
                json={
                    "email": "New.Parent@Example.com",
                    "password": "password123",
                    "role": "PARENT",
                    "first_name": "Pat",
                    "last_name": "Doe",
                    "phone_number": "555-0100",
                },
            )
            event = queue.get_nowait()
        finally:
            activity_bus.unsubscribe(queue)

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "new.parent@example.com"
        assert data["user"]["role"] == "PARENT"
        assert data["user"]["first_name"] == "Pat"
        claims = decode_access_token(data["token"])
        assert claims["sub"] == data["user"]["id"]
        assert claims["role"] == "PARENT"
        assert claims["sid"]
        assert event.type == "user_created"

        me = await client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["phone_number"] == "555-0100"

    async def test_duplicate_email_rejected(self, client: AsyncClient, parent):
        response = await client.post(
            f"{BASE}/register",
            json={
                "email": parent.email.upper(),
                "password": "password123",
                "role": "NANNY",
                "first_name": "A",
                "last_name": "B",
            },
        )

        assert response.status_code == 409
        assert response.json() == {"detail": "Email already in use", "error_type": "ConflictError"}

    @pytest.mark.parametrize(
        "overrides",
        [{"password": "short"}, {"email": "not-an-email"}, {"role": "GUEST"}, {"first_name": ""}],
    )
    async def test_invalid_payload(self, client: AsyncClient, overrides):
        body = {"email": "x@example.com", "password": "password123", "role": "NANNY", "first_name": "A", "last_name": "B"}
        body.update(overrides)

        response = await client.post(f"{BASE}/register", json=body)

        assert response.status_code == 422


class TestLogin:
    async def test_login_success(self, client: AsyncClient, nanny):
        response = await client.post(f"{BASE}/login", json={"email": nanny.email, "password": "password123"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == nanny.id
        assert data["user"]["first_name"] == "Nora"
        assert decode_access_token(data["token"])["sid"] != decode_access_token(nanny.token)["sid"]

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(f"{BASE}/login", json={"email": "ghost@example.com", "password": "password123"})

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    async def test_wrong_password(self, client: AsyncClient, nanny):
        response = await client.post(f"{BASE}/login", json={"email": nanny.email, "password": "wrong-password"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid password"


class TestCurrentUser:
    async def test_me(self, client: AsyncClient, nanny):
        response = await client.get(f"{BASE}/me", headers=nanny.headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == nanny.id
        assert data["role"] == "NANNY"
        assert data["profile"]["first_name"] == "Nora"
        assert data["two_factor_enabled"] is False

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{BASE}/me")

        assert response.status_code == 401
        assert response.json()["error_type"] == "UnauthorizedError"

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get(f"{BASE}/verify-token", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    async def test_verify_token(self, client: AsyncClient, parent):
        response = await client.get(f"{BASE}/verify-token", headers=parent.headers)

        assert response.json() == {"valid": True, "user_id": parent.id, "role": "PARENT"}

    async def test_ai_availability_without_key(self, client: AsyncClient, parent):
        response = await client.get(f"{BASE}/ai-availability", headers=parent.headers)

        assert response.json() == {"available": False}


class TestChangePassword:
    async def test_change_password(self, client: AsyncClient, parent):
        response = await client.post(
            f"{BASE}/change-password",
            json={"current_password": "password123", "new_password": "new-password-456"},
            headers=parent.headers,
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

        old = await client.post(f"{BASE}/login", json={"email": parent.email, "password": "password123"})
        new = await client.post(f"{BASE}/login", json={"email": parent.email, "password": "new-password-456"})
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_wrong_current_password(self, client: AsyncClient, parent):
        response = await client.post(
            f"{BASE}/change-password",
            json={"current_password": "nope-nope", "new_password": "new-password-456"},
            headers=parent.headers,
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Current password is incorrect"


class TestTwoFactor:
    async def test_enrolment_cycle(self, client: AsyncClient, admin):
        setup = await client.post(f"{BASE}/2fa/setup", headers=admin.headers)
        assert setup.status_code == 200
        secret = setup.json()["secret"]
        assert setup.json()["otpauth_url"].startswith("otpauth://totp/")

        wrong_code = "000000" if pyotp.TOTP(secret).now() != "000000" else "111111"
        rejected = await client.post(f"{BASE}/2fa/verify", json={"code": wrong_code}, headers=admin.headers)
        assert rejected.status_code == 400
        assert rejected.json()["detail"] == "Invalid verification code"

        verified = await client.post(f"{BASE}/2fa/verify", json={"code": pyotp.TOTP(secret).now()}, headers=admin.headers)
        assert verified.status_code == 200
        assert len(verified.json()["recovery_codes"]) == 10

        me = await client.get(f"{BASE}/me", headers=admin.headers)
        assert me.json()["two_factor_enabled"] is True

        disabled = await client.post(f"{BASE}/2fa/disable", headers=admin.headers)
        assert disabled.status_code == 200
        again = await client.post(f"{BASE}/2fa/disable", headers=admin.headers)
        assert again.status_code == 400

    async def test_verify_without_setup(self, client: AsyncClient, admin):
        response = await client.post(f"{BASE}/2fa/verify", json={"code": "123456"}, headers=admin.headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Two-factor authentication is not set up"


class TestSessions:
    async def test_list_and_revoke_sessions(self, client: AsyncClient, nanny):
        login = await client.post(
            f"{BASE}/login",
            json={"email": nanny.email, "password": "password123"},
            headers={"User-Agent": "Mozilla/5.0 (iPhone) Mobile Safari/604.1"},
        )
        second_token = login.json()["token"]

        sessions = (await client.get(f"{BASE}/sessions", headers=nanny.headers)).json()
        assert len(sessions) == 2
        current_sid = decode_access_token(nanny.token)["sid"]
        assert [s["id"] for s in sessions if s["is_current"]] == [current_sid]
        mobile = next(s for s in sessions if s["id"] != current_sid)
        assert mobile["device"] == "Mobile"
        assert mobile["browser"] == "Safari"

        revoked = await client.delete(f"{BASE}/sessions/{mobile['id']}", headers=nanny.headers)
        assert revoked.status_code == 200

        rejected = await client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {second_token}"})
        assert rejected.status_code == 401
        assert len((await client.get(f"{BASE}/sessions", headers=nanny.headers)).json()) == 1

    async def test_cannot_revoke_another_users_session(self, client: AsyncClient, nanny, parent):
        response = await client.delete(f"{BASE}/sessions/{decode_access_token(parent.token)['sid']}", headers=nanny.headers)

        assert response.status_code == 404
