import base64

import pytest

from conftest import PNG_BYTES


@pytest.fixture
def jwt_secret(settings_env):
    settings_env(FUNCTION_JWT_SECRET="super-secret-jwt-token")
    return "super-secret-jwt-token"


def _payload():
    return {"messageId": "wamid.AUTH", "base64": base64.b64encode(PNG_BYTES).decode(), "direction": "outbound"}


def test_auth_required_missing_header(client, jwt_secret):
    response = client.post("/n8n-media-processor", json=_payload())
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authenticated"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["www-authenticate"] == "Bearer"


def test_auth_invalid_token(client, jwt_secret):
    response = client.post(
        "/n8n-media-processor", json=_payload(), headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid or expired token"}
    assert response.headers["access-control-allow-origin"] == "*"


def test_auth_valid_token(client, jwt_secret, token_for):
    token = token_for(jwt_secret)
    response = client.post("/n8n-media-processor", json=_payload(), headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_preflight_does_not_require_auth(client, jwt_secret):
    response = client.options("/n8n-media-processor")
    assert response.status_code == 204


def test_auth_disabled_without_secret(client, settings_env):
    settings_env()
    response = client.post("/n8n-media-processor", json=_payload())
    assert response.status_code == 200
