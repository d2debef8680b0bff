import json
from urllib.parse import parse_qs

import httpx
import pytest

from gemini_proxy.auth import AuthManager
from gemini_proxy.errors import AuthenticationError, UpstreamError

from .support import TOKEN_URL, UpstreamRecorder, credentials_json, make_settings


def _manager(handler, **overrides):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AuthManager(make_settings(**overrides), http_client=http_client)


async def test_fresh_stored_token_is_used_without_refresh():
    upstream = UpstreamRecorder()
    auth = _manager(upstream)

    await auth.initialize_auth()

    assert auth.get_access_token() == "stored-token"
    assert auth.auth_headers()["Authorization"] == "Bearer stored-token"
    assert upstream.token_requests == 0


async def test_stored_token_close_to_expiry_is_refreshed():
    captured = []

    def handler(request):
        captured.append(parse_qs(request.content.decode("utf-8")))
        return httpx.Response(200, json={"access_token": "new-token", "expires_in": 3600})

    auth = _manager(handler, GCP_SERVICE_ACCOUNT=credentials_json(expires_in=60))

    await auth.initialize_auth()
    await auth.initialize_auth()

    assert auth.get_access_token() == "new-token"
    assert len(captured) == 1
    assert captured[0] == {
        "client_id": ["client-id"],
        "client_secret": ["client-secret"],
        "refresh_token": ["refresh-token"],
        "grant_type": ["refresh_token"],
    }


async def test_cleared_cache_forces_refresh_of_stored_token():
    upstream = UpstreamRecorder()
    auth = _manager(upstream)
    await auth.initialize_auth()

    await auth.clear_token_cache()
    await auth.initialize_auth()

    assert auth.get_access_token() == "refreshed-1"
    assert upstream.token_requests == 1


@pytest.mark.parametrize(
    "credentials, message",
    [
        ("", "is not set"),
        ("{broken", "is not valid JSON"),
        ("[1, 2]", "must be a JSON object"),
        (json.dumps({"access_token": "old", "expiry_date": 0}), "No refresh token"),
    ],
)
async def test_unusable_credentials(credentials, message):
    auth = _manager(UpstreamRecorder(), GCP_SERVICE_ACCOUNT=credentials)

    with pytest.raises(AuthenticationError, match=message):
        await auth.initialize_auth()


async def test_rejected_refresh_raises():
    def handler(request):
        return httpx.Response(400, json={"error": "invalid_grant"})

    auth = _manager(handler, GCP_SERVICE_ACCOUNT=credentials_json(expires_in=0))

    with pytest.raises(AuthenticationError, match="Token refresh failed: 400"):
        await auth.initialize_auth()


async def test_call_endpoint_retries_once_after_unauthorized():
    seen = []

    def handler(request):
        if str(request.url) == TOKEN_URL:
            return httpx.Response(200, json={"access_token": "refreshed", "expires_in": 3600})
        seen.append(request.headers["authorization"])
        if len(seen) == 1:
            return httpx.Response(401, json={"error": "expired"})
        return httpx.Response(200, json={"cloudaicompanionProject": "p-1"})

    auth = _manager(handler)

    data = await auth.call_endpoint("loadCodeAssist", {"metadata": {}})

    assert data == {"cloudaicompanionProject": "p-1"}
    assert seen == ["Bearer stored-token", "Bearer refreshed"]


async def test_call_endpoint_raises_on_other_errors():
    def handler(request):
        return httpx.Response(403, text="forbidden")

    auth = _manager(handler)

    with pytest.raises(UpstreamError) as exc_info:
        await auth.call_endpoint("loadCodeAssist", {})

    assert exc_info.value.status_code == 403


def test_endpoint_url():
    auth = AuthManager(make_settings())

    assert auth.endpoint_url("loadCodeAssist") == "https://cloudcode-pa.googleapis.com/v1internal:loadCodeAssist"
