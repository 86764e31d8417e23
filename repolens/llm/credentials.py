"""OAuth2 client-credentials token cache for the AI service."""

from __future__ import annotations

import asyncio
import base64
import time
from dataclasses import dataclass
from typing import Any, Callable

import requests

from repolens.errors import AuthenticationError, ConfigurationError, UpstreamServiceError
from repolens.utils.logging import get_logger
from repolens.utils.monitoring import record_token_exchange, record_upstream_latency

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedToken:
    """Bearer token and the epoch millisecond after which it must not be served."""

    value: str
    expires_at_ms: float

    def is_valid(self, now_ms: float) -> bool:
        return now_ms < self.expires_at_ms


class ClientCredentialsTokenCache:
    """
    Obtains and caches a bearer token from an OAuth2 token endpoint.

    The cached token is returned until it expires. Refresh is single-flight:
    concurrent callers that find the cache empty wait on one lock, the first
    one performs the exchange and the rest reuse its token. A failed exchange
    caches nothing, so the next call tries again.

    Example:
        >>> cache = ClientCredentialsTokenCache("id", "secret", "https://auth.example/token")
        >>> token = await cache.get_token()
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        auth_url: str | None,
        scope: str | None = "data:read data:write",
        timeout: float = 30.0,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_url = auth_url
        self.scope = scope
        self.timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock
        self._token: CachedToken | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: dict[str, Any], session: requests.Session | None = None) -> "ClientCredentialsTokenCache":
        ai = config.get("ai", {})
        return cls(
            client_id=ai.get("client_id"),
            client_secret=ai.get("client_secret"),
            auth_url=ai.get("auth_url"),
            scope=ai.get("scope"),
            timeout=float(ai.get("timeout_seconds", 30.0)),
            session=session,
        )

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _basic_auth(self) -> str:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "Missing AI service credentials. Set AI_CLIENT_ID and AI_CLIENT_SECRET.",
                config_key="ai.client_id",
            )
        raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def _cached(self) -> str | None:
        if self._token is not None and self._token.is_valid(self._now_ms()):
            return self._token.value
        return None

    async def get_token(self) -> str:
        """Return a valid bearer token, exchanging credentials if needed."""
        if (value := self._cached()) is not None:
            return value
        async with self._lock:
            # another waiter may have refreshed while we were queued
            if (value := self._cached()) is not None:
                return value
            self._token = await self._exchange()
            return self._token.value

    def invalidate(self) -> None:
        self._token = None

    async def _exchange(self) -> CachedToken:
        authorization = self._basic_auth()
        if not self.auth_url:
            raise ConfigurationError("Missing AI auth URL. Set AI_AUTH_URL.", config_key="ai.auth_url")
        form = {"grant_type": "client_credentials"}
        if self.scope:
            form["scope"] = self.scope
        start = time.perf_counter()
        try:
            resp = await asyncio.to_thread(
                self._session.post,
                self.auth_url,
                data=form,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                    "Authorization": authorization,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            record_token_exchange(False)
            logger.error("token_exchange_failed", error=str(e))
            raise UpstreamServiceError(f"Token endpoint unreachable: {e}") from e
        finally:
            record_upstream_latency("token_endpoint", time.perf_counter() - start)

        if not resp.ok:
            record_token_exchange(False)
            logger.error("token_exchange_rejected", status=resp.status_code)
            raise AuthenticationError(resp.status_code, resp.text)

        try:
            payload = resp.json()
            value = payload["access_token"]
            expires_in = float(payload.get("expires_in") or 0)
        except (ValueError, KeyError, TypeError) as e:
            record_token_exchange(False)
            raise UpstreamServiceError("Token endpoint returned an unreadable response", body=resp.text) from e

        record_token_exchange(True)
        logger.info("token_exchanged", expires_in=expires_in)
        return CachedToken(value=value, expires_at_ms=self._now_ms() + expires_in * 1000)
