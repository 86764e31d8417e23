"""Unit tests for the client-credentials token cache."""

import asyncio
import base64

import pytest

from conftest import FakeResponse, FakeSession
from repolens.errors import AuthenticationError, ConfigurationError
from repolens.llm.credentials import CachedToken, ClientCredentialsTokenCache


class Clock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _issuing_session(delay: float = 0.0) -> FakeSession:
    counter = {"n": 0}

    def responder(url, **kwargs):
        counter["n"] += 1
        return FakeResponse(200, {"access_token": f"token-{counter['n']}", "expires_in": 3600})

    return FakeSession(responder, delay=delay)


def _cache(session, clock=None, **kwargs) -> ClientCredentialsTokenCache:
    return ClientCredentialsTokenCache(
        client_id=kwargs.get("client_id", "client"),
        client_secret=kwargs.get("client_secret", "secret"),
        auth_url="https://auth.example/token",
        session=session,
        clock=clock or Clock(),
    )


def test_cached_token_expiry_is_strict():
    token = CachedToken(value="t", expires_at_ms=2_000)
    assert token.is_valid(1_999)
    assert not token.is_valid(2_000)


@pytest.mark.asyncio
async def test_exchange_request_shape():
    session = _issuing_session()
    token = await _cache(session).get_token()
    assert token == "token-1"
    post = session.posts[0]
    assert post["url"] == "https://auth.example/token"
    assert post["data"]["grant_type"] == "client_credentials"
    expected = base64.b64encode(b"client:secret").decode()
    assert post["headers"]["Authorization"] == f"Basic {expected}"
    assert post["timeout"] == 30.0


@pytest.mark.asyncio
async def test_token_reused_until_expiry():
    session = _issuing_session()
    clock = Clock()
    cache = _cache(session, clock)
    assert await cache.get_token() == "token-1"
    clock.now += 3599
    assert await cache.get_token() == "token-1"
    assert len(session.posts) == 1

    clock.now += 1
    assert await cache.get_token() == "token-2"
    assert len(session.posts) == 2


@pytest.mark.asyncio
async def test_concurrent_refresh_is_single_flight():
    session = _issuing_session(delay=0.05)
    cache = _cache(session)
    tokens = await asyncio.gather(*(cache.get_token() for _ in range(10)))
    assert len(session.posts) == 1
    assert set(tokens) == {"token-1"}


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_network():
    session = _issuing_session()
    cache = _cache(session, client_secret=None)
    with pytest.raises(ConfigurationError):
        await cache.get_token()
    assert session.posts == []


@pytest.mark.asyncio
async def test_rejected_exchange_caches_nothing():
    responses = [FakeResponse(401, text="invalid_client"), FakeResponse(200, {"access_token": "ok", "expires_in": 60})]
    session = FakeSession(lambda url, **kw: responses.pop(0))
    cache = _cache(session)
    with pytest.raises(AuthenticationError) as exc:
        await cache.get_token()
    assert exc.value.status == 401
    assert "invalid_client" in exc.value.body
    assert await cache.get_token() == "ok"
    assert len(session.posts) == 2


@pytest.mark.asyncio
async def test_invalidate_forces_new_exchange():
    session = _issuing_session()
    cache = _cache(session)
    assert await cache.get_token() == "token-1"
    cache.invalidate()
    assert await cache.get_token() == "token-2"
