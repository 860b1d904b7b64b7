"""Fetch remote HTML through an ordered chain of network relays."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import AsyncIterator, Sequence
from urllib.parse import quote, urlsplit

from charset_normalizer import from_bytes
import httpx

from ojtgen.cancellation import CancellationToken
from ojtgen.config import PipelineSettings
from ojtgen.errors import InputValidationError
from ojtgen.ingestion.strategies import StrategyOutcome, run_in_order
from ojtgen.ingestion.url_guard import validate_public_url

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
}
MAX_REDIRECTS = 5


@dataclass(frozen=True, slots=True)
class Relay:
    """A relay endpoint described by a URL template.

    ``{url}`` is replaced by the percent-encoded target and ``{raw_url}`` by
    the target as-is (use ``"{raw_url}"`` alone for a direct fetch).
    """

    name: str
    template: str

    def build_url(self, target: str) -> str:
        return self.template.replace("{url}", quote(target, safe="")).replace("{raw_url}", target)


DIRECT_RELAY = Relay(name="direct", template="{raw_url}")


def _relay_name(template: str) -> str:
    if template == "{raw_url}":
        return DIRECT_RELAY.name
    host = urlsplit(template).hostname
    return host or template


def relays_from_settings(settings: PipelineSettings) -> list[Relay]:
    """Build the fixed relay order: optional self-hosted worker, then fallbacks."""

    relays: list[Relay] = []
    if settings.proxy_worker_url:
        relays.append(Relay(name="worker", template=f"{settings.proxy_worker_url}/proxy?url={{url}}"))
    for template in settings.fallback_relays:
        relays.append(Relay(name=_relay_name(template), template=template))
    return relays


def decode_body(response: httpx.Response) -> str:
    """Decode a relay response, guessing the charset when none is declared."""

    if response.charset_encoding:
        return response.text

    raw = response.content
    if not raw:
        return ""

    best = from_bytes(raw).best()
    if best is not None and best.encoding:
        return str(best)
    return raw.decode("utf-8", errors="replace")


class RelayFetchStrategy:
    """Single attempt against one relay; never retries.

    Redirects are followed by hand so each ``Location`` passes the same public
    host check as the requested URL.
    """

    def __init__(self, relay: Relay, client: httpx.AsyncClient, *, timeout_seconds: float) -> None:
        self.name = relay.name
        self._relay = relay
        self._client = client
        self._timeout = httpx.Timeout(timeout_seconds)

    async def attempt(self, payload: str) -> StrategyOutcome[str]:
        url = self._relay.build_url(payload)
        try:
            response = await self._client.get(url, timeout=self._timeout, follow_redirects=False)
            for _ in range(MAX_REDIRECTS):
                location = response.headers.get("location") if response.is_redirect else None
                if not location:
                    break
                url = str(response.url.join(location))
                try:
                    validate_public_url(url)
                except InputValidationError as exc:
                    return StrategyOutcome.failure(self.name, f"redirect to disallowed host: {exc.message}")
                logger.debug("Relay '%s' redirected to %s", self.name, url)
                response = await self._client.get(url, timeout=self._timeout, follow_redirects=False)
        except httpx.HTTPError as exc:
            return StrategyOutcome.failure(self.name, f"{type(exc).__name__}: {exc}")

        if response.is_redirect:
            return StrategyOutcome.failure(self.name, f"more than {MAX_REDIRECTS} redirects")
        if not response.is_success:
            return StrategyOutcome.failure(self.name, f"HTTP {response.status_code}")

        body = decode_body(response)
        if not body.strip():
            return StrategyOutcome.failure(self.name, "empty response body")

        logger.debug("Relay '%s' returned %d characters for %s", self.name, len(body), payload)
        return StrategyOutcome.success(self.name, body)


class ProxyChain:
    """Try each relay in fixed order and return the first successful body."""

    def __init__(
        self,
        relays: Sequence[Relay],
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._relays = list(relays)
        self._timeout_seconds = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: PipelineSettings, *, client: httpx.AsyncClient | None = None) -> "ProxyChain":
        return cls(relays_from_settings(settings), timeout_seconds=settings.relay_timeout_seconds, client=client)

    @property
    def relays(self) -> list[Relay]:
        return list(self._relays)

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(headers=DEFAULT_HEADERS) as client:
            yield client

    async def fetch(self, url: str, *, cancel_token: CancellationToken | None = None) -> str:
        """Return the raw HTML for *url*.

        The URL is checked before any relay is contacted, so a disallowed host
        raises ``InputValidationError`` without network traffic.  When every
        relay fails, ``ExtractionFailure`` is raised with the per-relay errors.
        A cancelled *cancel_token* stops the chain before the next relay.
        """

        target = validate_public_url(url)

        async with self._client_scope() as client:
            strategies = [
                RelayFetchStrategy(relay, client, timeout_seconds=self._timeout_seconds) for relay in self._relays
            ]
            body, _ = await run_in_order(
                strategies,
                target,
                source=target,
                failure_message="All relays failed to fetch the URL",
                cancel_token=cancel_token,
            )
        return body
