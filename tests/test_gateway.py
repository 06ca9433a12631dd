"""
Unit tests for the Acumatica gateway (Auth + Client + Factory)

Tests:
- AuthManager: login, cookie capture, session cache reuse and expiry
- AcumaticaClient: retry budget for 5xx, 429, timeouts, single re-login on 401
- GatewayFactory: shared session cache, credential decoding
"""

import json
import threading
import time
from unittest.mock import Mock, call, patch

import pytest
import requests

from acuimport.api.auth import AuthManager, Credentials, SessionCache, cache_key
from acuimport.api.client import AcumaticaClient
from acuimport.api.errors import (
    ApiError,
    AuthError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)
from acuimport.api.factory import GatewayFactory, decode_credentials, encode_credentials
from acuimport.config import AcumaticaApiConfig
from acuimport.importer.errors import CredentialsError
from acuimport.store.models import Connection


INSTANCE = "https://erp.example.com"
BASE = f"{INSTANCE}/entity/Default/24.200.001"


# ============================================================================
# FIXTURES
# ============================================================================


def make_response(status=200, body=None, headers=None, cookies=None):
    """Build a fake requests.Response"""
    response = Mock()
    response.status_code = status
    if body is None:
        response.text = ""
    elif isinstance(body, str):
        response.text = body
    else:
        response.text = json.dumps(body)
    response.headers = headers or {}
    response.cookies = cookies if cookies is not None else {}
    return response


def login_response():
    return make_response(204, cookies={"ASP.NET_SessionId": "abc", ".ASPXAUTH": "tok"})


@pytest.fixture
def credentials():
    return Credentials(username="admin", password="secret", company="Company")


@pytest.fixture
def http():
    """Fake requests.Session whose login always succeeds"""
    session = Mock()
    session.post.return_value = login_response()
    return session


@pytest.fixture
def client(credentials, http):
    return AcumaticaClient(INSTANCE, credentials, config=AcumaticaApiConfig(), http=http)


@pytest.fixture
def no_sleep():
    with patch("acuimport.api.client.time.sleep") as sleep:
        yield sleep


# ============================================================================
# TEST: AuthManager
# ============================================================================


class TestAuthManager:
    """Tests for login and the session cache"""

    def test_login_posts_credentials(self, credentials, http):
        auth = AuthManager(INSTANCE + "/", credentials, SessionCache(), http=http)

        session = auth.login()

        http.post.assert_called_once_with(
            f"{INSTANCE}/entity/auth/login",
            json={"name": "admin", "password": "secret", "company": "Company"},
            timeout=30.0,
        )
        assert session.cookies == {"ASP.NET_SessionId": "abc", ".ASPXAUTH": "tok"}
        assert session.cookie_header == "ASP.NET_SessionId=abc; .ASPXAUTH=tok"
        assert session.instance_url == INSTANCE

    def test_login_rejected(self, credentials, http):
        http.post.return_value = make_response(401, "Invalid credentials")
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        with pytest.raises(AuthError) as exc_info:
            auth.login()

        assert exc_info.value.status == 401
        assert "Invalid credentials" in exc_info.value.message

    def test_login_without_cookies(self, credentials, http):
        http.post.return_value = make_response(204)
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        with pytest.raises(AuthError):
            auth.login()

    def test_cached_session_is_reused(self, credentials, http):
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        first = auth.get_session()
        second = auth.get_session()

        assert first is second
        assert http.post.call_count == 1

    def test_session_near_expiry_is_renewed(self, credentials, http):
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        with patch("acuimport.api.auth.time") as fake_time:
            fake_time.time.return_value = 1000.0
            auth.get_session()

            # 1200 s lifetime; 100 s left is still usable
            fake_time.time.return_value = 2100.0
            auth.get_session()
            assert http.post.call_count == 1

            # 50 s left is inside the 60 s margin
            fake_time.time.return_value = 2150.0
            auth.get_session()
            assert http.post.call_count == 2

    def test_cache_key_ignores_trailing_slash(self, credentials, http):
        cache = SessionCache()
        AuthManager(INSTANCE + "//", credentials, cache, http=http).get_session()
        AuthManager(INSTANCE, credentials, cache, http=http).get_session()

        assert cache_key(INSTANCE + "/") == INSTANCE
        assert http.post.call_count == 1

    def test_refresh_bypasses_cache(self, credentials, http):
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        auth.get_session()
        auth.refresh_session()

        assert http.post.call_count == 2

    def test_invalidate(self, credentials, http):
        cache = SessionCache()
        auth = AuthManager(INSTANCE, credentials, cache, http=http)

        auth.get_session()
        auth.invalidate_session()

        assert len(cache) == 0

    def test_concurrent_callers_share_one_login(self, credentials):
        http = Mock()

        def slow_login(*args, **kwargs):
            time.sleep(0.05)
            return login_response()

        http.post.side_effect = slow_login
        auth = AuthManager(INSTANCE, credentials, SessionCache(), http=http)

        sessions = []
        threads = [threading.Thread(target=lambda: sessions.append(auth.get_session())) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert http.post.call_count == 1
        assert len({id(s) for s in sessions}) == 1


# ============================================================================
# TEST: AcumaticaClient
# ============================================================================


class TestAcumaticaClient:
    """Tests for request handling and retries"""

    def test_get_returns_json(self, client, http):
        http.request.return_value = make_response(200, [{"InventoryID": {"value": "A-1"}}])

        result = client.get("/StockItem?$select=InventoryID")

        assert result == [{"InventoryID": {"value": "A-1"}}]
        method, url = http.request.call_args[0]
        assert method == "GET"
        assert url == f"{BASE}/StockItem?$select=InventoryID"
        headers = http.request.call_args[1]["headers"]
        assert headers["Cookie"] == "ASP.NET_SessionId=abc; .ASPXAUTH=tok"

    def test_put_sends_json_body(self, client, http):
        http.request.return_value = make_response(200, {"id": "1"})

        client.put("/StockItem", {"InventoryID": {"value": "A-1"}})

        assert http.request.call_args[1]["data"] == json.dumps({"InventoryID": {"value": "A-1"}})

    def test_empty_body_returns_none(self, client, http):
        http.request.return_value = make_response(204)

        assert client.delete("/StockItem/1") is None

    def test_custom_api_version(self, credentials, http):
        client = AcumaticaClient(INSTANCE, credentials, api_version="23.200.001", http=http)

        assert client.base_url == f"{INSTANCE}/entity/Default/23.200.001"

    def test_server_error_retry_budget(self, client, http, no_sleep):
        """max_retries=3 against an always-503 server: 4 attempts, then ServerError"""
        http.request.return_value = make_response(503, {"exceptionMessage": "Service down"})

        with pytest.raises(ServerError) as exc_info:
            client.get("/StockItem")

        assert http.request.call_count == 4
        assert no_sleep.call_args_list == [call(1.0), call(2.0), call(4.0)]
        assert exc_info.value.status == 503
        assert exc_info.value.message == "Service down"
        assert exc_info.value.retryable is False

    def test_server_error_recovers(self, client, http, no_sleep):
        http.request.side_effect = [make_response(500, "oops"), make_response(200, {"ok": True})]

        assert client.get("/StockItem") == {"ok": True}
        assert http.request.call_count == 2

    def test_401_relogs_once(self, client, http):
        http.request.side_effect = [make_response(401), make_response(200, {"ok": True})]

        assert client.get("/StockItem") == {"ok": True}
        assert http.post.call_count == 2

    def test_second_401_is_not_retried(self, client, http):
        http.request.return_value = make_response(401, {"message": "Unauthorized"})

        with pytest.raises(AuthError):
            client.get("/StockItem")

        assert http.request.call_count == 2
        assert http.post.call_count == 2

    def test_429_honours_retry_after(self, client, http, no_sleep):
        http.request.side_effect = [
            make_response(429, headers={"Retry-After": "2"}),
            make_response(200, {"ok": True}),
        ]

        assert client.get("/StockItem") == {"ok": True}
        no_sleep.assert_called_once_with(2.0)

    def test_429_without_header_uses_double_base_delay(self, client, http, no_sleep):
        http.request.side_effect = [make_response(429), make_response(200, {"ok": True})]

        client.get("/StockItem")

        no_sleep.assert_called_once_with(2.0)

    def test_429_exhausted(self, client, http, no_sleep):
        http.request.return_value = make_response(429)

        with pytest.raises(RateLimitedError) as exc_info:
            client.get("/StockItem")

        assert http.request.call_count == 4
        assert exc_info.value.status == 429
        assert exc_info.value.retryable is False

    def test_timeout_retries_without_delay(self, client, http, no_sleep):
        http.request.side_effect = requests.exceptions.Timeout()

        with pytest.raises(RequestTimeoutError) as exc_info:
            client.get("/StockItem")

        assert http.request.call_count == 4
        no_sleep.assert_not_called()
        assert exc_info.value.status == 0
        assert exc_info.value.retryable is True
        assert exc_info.value.message == "Request timed out"

    def test_client_error_is_not_retried(self, client, http, no_sleep):
        http.request.return_value = make_response(400, {"message": "Bad field"})

        with pytest.raises(ApiError) as exc_info:
            client.get("/StockItem")

        assert http.request.call_count == 1
        assert exc_info.value.status == 400
        assert exc_info.value.message == "Bad field"

    def test_nested_error_body(self, client, http):
        http.request.return_value = make_response(
            500,
            {
                "message": "An error has occurred.",
                "exceptionMessage": "Operation failed",
                "innerException": {"exceptionMessage": "'Class' cannot be empty."},
            },
        )

        with patch("acuimport.api.client.time.sleep"), pytest.raises(ServerError) as exc_info:
            client.get("/StockItem")

        assert exc_info.value.message == "'Class' cannot be empty."

    def test_raw_error_body(self, client, http):
        http.request.return_value = make_response(422, "plain text failure")

        with pytest.raises(ApiError) as exc_info:
            client.get("/StockItem")

        assert exc_info.value.message == "plain text failure"

    def test_transport_failure(self, client, http):
        http.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ApiError) as exc_info:
            client.get("/StockItem")

        assert exc_info.value.status == 0


# ============================================================================
# TEST: GatewayFactory
# ============================================================================


class TestGatewayFactory:
    """Tests for gateway creation"""

    def make_connection(self, credentials):
        return Connection(
            id="c1",
            user_id="u1",
            name="Prod",
            instance_url=INSTANCE,
            credentials=credentials,
            api_version="24.200.001",
        )

    def test_credentials_round_trip(self, credentials):
        assert decode_credentials(encode_credentials(credentials)) == credentials

    def test_clients_share_session_cache(self, credentials, http):
        factory = GatewayFactory(http_factory=lambda: http)
        connection = self.make_connection(encode_credentials(credentials))

        factory.create(connection).auth.get_session()
        factory.create(connection).auth.get_session()

        assert http.post.call_count == 1

    def test_close_clears_cache(self, credentials, http):
        factory = GatewayFactory(http_factory=lambda: http)
        factory.create(self.make_connection(encode_credentials(credentials))).auth.get_session()

        factory.close()

        assert len(factory.session_cache) == 0

    def test_undecodable_credentials(self):
        factory = GatewayFactory()

        with pytest.raises(CredentialsError):
            factory.create(self.make_connection("not json"))

    def test_custom_decrypt_hook(self, credentials, http):
        factory = GatewayFactory(decrypt=lambda blob: credentials, http_factory=lambda: http)

        client = factory.create(self.make_connection("encrypted-blob"))

        assert client.auth.credentials is credentials
