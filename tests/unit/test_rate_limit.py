"""Unit tests for the rate limit key function."""
import pytest
from starlette.requests import Request

from common.config import reset_settings_cache
from common.rate_limit import client_key


def make_request(headers: dict[str, str]) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/spots",
        "headers": [(key.lower().encode(), value.encode()) for key, value in headers.items()],
        "client": ("10.0.0.1", 51234),
    }
    return Request(scope)


@pytest.fixture
def trusted_peer(monkeypatch):
    monkeypatch.setenv("TRUSTED_PROXIES", '["10.0.0.1"]')
    reset_settings_cache()
    yield
    monkeypatch.delenv("TRUSTED_PROXIES")
    reset_settings_cache()


def test_client_key_uses_peer_address():
    assert client_key(make_request({})) == "10.0.0.1"


def test_client_key_ignores_forwarded_header_from_untrusted_peer():
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
    assert client_key(request) == "10.0.0.1"


def test_spoofed_forwarded_headers_share_one_key():
    keys = {client_key(make_request({"X-Forwarded-For": f"198.51.100.{n}"})) for n in range(5)}
    assert keys == {"10.0.0.1"}


def test_client_key_uses_first_forwarded_hop_behind_trusted_proxy(trusted_peer):
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
    assert client_key(request) == "203.0.113.7"
