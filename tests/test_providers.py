from urllib.parse import parse_qs, urlparse

import pytest
import requests

from secretshare.auth import providers
from secretshare.auth.models import Provider
from secretshare.auth.providers import OAuthClient, build_clients, check_state, sign_state
from secretshare.errors import ProviderError


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture()
def google(settings) -> OAuthClient:
    return OAuthClient(Provider.GOOGLE, settings.google)


def _patch_http(monkeypatch, token_resp, profile_resp, calls=None):
    def fake_post(url, data=None, timeout=None):
        if calls is not None:
            calls.append(("POST", url, data))
        return token_resp

    def fake_get(url, headers=None, timeout=None):
        if calls is not None:
            calls.append(("GET", url, headers))
        return profile_resp

    monkeypatch.setattr(providers.requests, "post", fake_post)
    monkeypatch.setattr(providers.requests, "get", fake_get)


def test_authorize_url(google):
    url = urlparse(google.authorize_url("state-1"))
    qs = parse_qs(url.query)
    assert url.netloc == "accounts.google.com"
    assert qs["client_id"] == ["google-client"]
    assert qs["redirect_uri"] == ["http://testserver/auth/google/secrets"]
    assert qs["state"] == ["state-1"]
    assert qs["scope"] == ["profile"]
    assert qs["response_type"] == ["code"]


def test_exchange_returns_subject(google, monkeypatch):
    calls = []
    _patch_http(
        monkeypatch,
        FakeResponse(payload={"access_token": "at-1"}),
        FakeResponse(payload={"sub": "1234567890", "name": "Alice"}),
        calls,
    )
    assert google.exchange("code-1") == "1234567890"
    method, url, data = calls[0]
    assert method == "POST" and url == "https://oauth2.googleapis.com/token"
    assert data["code"] == "code-1" and data["grant_type"] == "authorization_code"
    assert calls[1][2] == {"Authorization": "Bearer at-1"}


def test_facebook_subject_field(settings, monkeypatch):
    client = OAuthClient(Provider.FACEBOOK, settings.facebook)
    _patch_http(
        monkeypatch,
        FakeResponse(payload={"access_token": "at-2"}),
        FakeResponse(payload={"id": "fb-77"}),
    )
    assert client.exchange("code") == "fb-77"


@pytest.mark.parametrize(
    "token_resp,profile_resp",
    [
        (FakeResponse(status_code=400, payload={"error": "invalid_grant"}), None),
        (FakeResponse(payload={}), None),
        (FakeResponse(payload={"access_token": "at"}), FakeResponse(status_code=401, payload={})),
        (FakeResponse(payload={"access_token": "at"}), FakeResponse(payload={"name": "no sub"})),
        (FakeResponse(payload={"access_token": "at"}), FakeResponse(payload=None)),
    ],
)
def test_exchange_failures(google, monkeypatch, token_resp, profile_resp):
    _patch_http(monkeypatch, token_resp, profile_resp)
    with pytest.raises(ProviderError):
        google.exchange("code")


def test_exchange_network_error(google, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(providers.requests, "post", boom)
    with pytest.raises(ProviderError):
        google.exchange("code")


def test_exchange_requires_code(google):
    with pytest.raises(ProviderError):
        google.exchange("")


def test_build_clients_only_configured(settings):
    clients = build_clients(settings)
    assert set(clients) == {Provider.GOOGLE}


def test_state_roundtrip_and_mismatch(settings):
    cookie = sign_state(settings, Provider.GOOGLE, "abc")
    check_state(settings, Provider.GOOGLE, cookie, "abc")
    with pytest.raises(ProviderError):
        check_state(settings, Provider.GOOGLE, cookie, "abd")
    with pytest.raises(ProviderError):
        check_state(settings, Provider.FACEBOOK, cookie, "abc")
    with pytest.raises(ProviderError):
        check_state(settings, Provider.GOOGLE, cookie + "x", "abc")
    with pytest.raises(ProviderError):
        check_state(settings, Provider.GOOGLE, None, "abc")
    with pytest.raises(ProviderError):
        check_state(settings, Provider.GOOGLE, cookie, "")
