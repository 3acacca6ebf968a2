"""Registration, login, token lifecycle and two-factor authentication.

Tests cover:
    - Registration validation, duplicates and role elevation rules
    - Login with password and with a second factor
    - Refresh, logout and token revocation, including the refresh token
    - Backup codes redeemed at most once
    - Sessions and devices bookkeeping
"""

import pyotp

from autoplatform.models.security_model import TwoFactorAuth
from autoplatform.services.two_factor_service import TwoFactorService

API = "/api/v1"


def _register(client, **overrides):
    payload = {"name": "Jane Driver", "email": "jane@example.com", "password": "supersecret1"}
    payload.update(overrides)
    return client.post(f"{API}/auth/register", json=payload)


def _login(client, email="jane@example.com", password="supersecret1", **extra):
    return client.post(f"{API}/auth/login", json={"email": email, "password": password, **extra})


def test_register_creates_user_without_password(client):
    res = _register(client)
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["email"] == "jane@example.com"
    assert data["role"] == "user"
    assert "password" not in data


def test_register_rejects_duplicate_email(client):
    _register(client)
    res = _register(client, email="JANE@example.com")
    assert res.status_code == 409
    assert res.get_json()["error"] == "USER_EXISTS"


def test_register_validation_error_is_400(client):
    res = _register(client, email="not-an-email", password="short")
    assert res.status_code == 400
    body = res.get_json()
    assert body["error"] == "VALIDATION_ERROR"
    assert "email" in body["errors"]["json"]


def test_register_cannot_self_assign_admin(client):
    res = _register(client, role="admin")
    assert res.get_json()["data"]["role"] == "user"


def test_admin_can_register_staff(client, admin_headers):
    res = client.post(
        f"{API}/auth/register",
        json={"name": "Ann Alyst", "email": "ann@example.com", "password": "supersecret1", "role": "analyst"},
        headers=admin_headers,
    )
    assert res.get_json()["data"]["role"] == "analyst"


def test_login_returns_tokens(client):
    _register(client)
    res = _login(client)
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["token_type"] == "Bearer"
    assert data["access_token"] and data["refresh_token"]
    assert data["user"]["email"] == "jane@example.com"


def test_login_wrong_password(client):
    _register(client)
    res = _login(client, password="wrong-password")
    assert res.status_code == 401
    assert res.get_json()["error"] == "INVALID_CREDENTIALS"


def test_me_requires_token(client):
    res = client.get(f"{API}/auth/me")
    assert res.status_code == 401
    assert res.get_json()["error"] == "AUTHENTICATION_REQUIRED"


def test_logout_revokes_token(client):
    _register(client)
    token = _login(client).get_json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get(f"{API}/auth/me", headers=headers).status_code == 200
    assert client.post(f"{API}/auth/logout", headers=headers).status_code == 200

    res = client.get(f"{API}/auth/me", headers=headers)
    assert res.status_code == 401
    assert res.get_json()["error"] == "TOKEN_REVOKED"


def test_refresh_issues_new_access_token(client):
    _register(client)
    tokens = _login(client).get_json()["data"]
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 200
    new_token = res.get_json()["data"]["access_token"]
    assert client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {new_token}"}).status_code == 200


def test_refresh_rejects_access_token(client):
    _register(client)
    tokens = _login(client).get_json()["data"]
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert res.status_code == 401
    assert res.get_json()["error"] == "INVALID_TOKEN"


def test_two_factor_enrolment_and_login(client):
    _register(client)
    headers = {"Authorization": f"Bearer {_login(client).get_json()['data']['access_token']}"}

    setup = client.post(f"{API}/security/2fa/setup", headers=headers).get_json()["data"]
    assert len(setup["backupCodes"]) == 10
    totp = pyotp.TOTP(setup["secret"])

    res = client.post(f"{API}/security/2fa/verify", json={"token": totp.now()}, headers=headers)
    assert res.status_code == 200

    status = client.get(f"{API}/security/2fa/status", headers=headers).get_json()["data"]
    assert status["isEnabled"] is True

    res = _login(client)
    assert res.status_code == 401
    assert res.get_json()["error"] == "TWO_FACTOR_REQUIRED"

    assert _login(client, totp_code=totp.now()).status_code == 200


def test_backup_code_is_single_use(client):
    _register(client)
    headers = {"Authorization": f"Bearer {_login(client).get_json()['data']['access_token']}"}
    setup = client.post(f"{API}/security/2fa/setup", headers=headers).get_json()["data"]
    client.post(f"{API}/security/2fa/verify", json={"token": pyotp.TOTP(setup["secret"]).now()}, headers=headers)

    code = setup["backupCodes"][0]
    assert _login(client, totp_code=code).status_code == 200
    res = _login(client, totp_code=code)
    assert res.status_code == 401
    assert res.get_json()["error"] == "INVALID_2FA_TOKEN"


def test_setup_cannot_replace_enabled_two_factor(client):
    _register(client)
    headers = {"Authorization": f"Bearer {_login(client).get_json()['data']['access_token']}"}
    setup = client.post(f"{API}/security/2fa/setup", headers=headers).get_json()["data"]
    totp = pyotp.TOTP(setup["secret"])
    client.post(f"{API}/security/2fa/verify", json={"token": totp.now()}, headers=headers)

    res = client.post(f"{API}/security/2fa/setup", headers=headers)
    assert res.status_code == 409
    assert res.get_json()["error"] == "2FA_ALREADY_ENABLED"

    status = client.get(f"{API}/security/2fa/status", headers=headers).get_json()["data"]
    assert status["isEnabled"] is True
    assert _login(client).get_json()["error"] == "TWO_FACTOR_REQUIRED"
    assert _login(client, totp_code=totp.now()).status_code == 200


def test_backup_code_redeemed_once_from_stale_reads(app, make_user):
    user = make_user()
    with app.app_context():
        codes = TwoFactorService.setup(user, "AutoPlatform")["backupCodes"]
        TwoFactorAuth.set_enabled(user["_id"], True)
        # both requests loaded the enrolment before either redeemed
        first = TwoFactorAuth.get_for_user(user["_id"])
        second = TwoFactorAuth.get_for_user(user["_id"])

        assert TwoFactorService.consume_backup_code(first, codes[0]) is True
        assert TwoFactorService.consume_backup_code(second, codes[0]) is False
        assert TwoFactorService.consume_backup_code(second, codes[1]) is True
        assert len(TwoFactorAuth.get_for_user(user["_id"])["backupCodes"]) == 8


def test_disable_requires_enabled_two_factor(client, user_headers):
    res = client.post(f"{API}/security/2fa/disable", json={"token": "123456"}, headers=user_headers)
    assert res.status_code == 404
    assert res.get_json()["error"] == "2FA_NOT_ENABLED"


def test_login_records_session_and_device(client):
    _register(client)
    token = _login(client, deviceId="pixel-7", deviceName="Pixel", platform="android").get_json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    sessions = client.get(f"{API}/security/sessions", headers=headers).get_json()["data"]
    assert sessions["total"] == 1
    assert sessions["sessions"][0]["isCurrent"] is True
    assert "jti" not in sessions["sessions"][0]

    devices = client.get(f"{API}/security/devices", headers=headers).get_json()["data"]
    assert devices["devices"][0]["deviceId"] == "pixel-7"


def test_logout_all_devices_revokes_every_session(client):
    _register(client)
    first = _login(client).get_json()["data"]["access_token"]
    second = _login(client).get_json()["data"]["access_token"]

    res = client.post(f"{API}/security/logout-all-devices", headers={"Authorization": f"Bearer {first}"})
    assert res.status_code == 200
    assert res.get_json()["data"]["sessionsRevoked"] == 2

    for token in (first, second):
        assert client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_refresh_rotates_access_token_within_session(client):
    _register(client)
    tokens = _login(client).get_json()["data"]
    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    new_token = res.get_json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {new_token}"}

    assert client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}).status_code == 401
    sessions = client.get(f"{API}/security/sessions", headers=headers).get_json()["data"]
    assert sessions["total"] == 1
    assert sessions["sessions"][0]["isCurrent"] is True
    assert "refreshJti" not in sessions["sessions"][0]


def test_logout_invalidates_refresh_token(client):
    _register(client)
    tokens = _login(client).get_json()["data"]
    client.post(f"{API}/auth/logout", headers={"Authorization": f"Bearer {tokens['access_token']}"})

    res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert res.status_code == 401
    assert res.get_json()["success"] is False


def test_logout_all_devices_invalidates_refresh_tokens(client):
    _register(client)
    first = _login(client).get_json()["data"]
    second = _login(client).get_json()["data"]

    client.post(f"{API}/security/logout-all-devices", headers={"Authorization": f"Bearer {first['access_token']}"})

    for tokens in (first, second):
        res = client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 401


def test_revoking_one_session_invalidates_its_refresh_token(client):
    _register(client)
    keep = _login(client).get_json()["data"]
    drop = _login(client).get_json()["data"]
    headers = {"Authorization": f"Bearer {keep['access_token']}"}

    sessions = client.get(f"{API}/security/sessions", headers=headers).get_json()["data"]["sessions"]
    other = next(s for s in sessions if not s["isCurrent"])
    assert client.delete(f"{API}/security/sessions/{other['_id']}", headers=headers).status_code == 200

    assert client.post(f"{API}/auth/refresh", json={"refresh_token": drop["refresh_token"]}).status_code == 401
    assert client.post(f"{API}/auth/refresh", json={"refresh_token": keep["refresh_token"]}).status_code == 200
