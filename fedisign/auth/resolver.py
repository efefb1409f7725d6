"""Public key resolution for signature verification."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urldefrag, urlparse

import httpx
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from fedisign.auth.errors import KeyFormatError, KeyResolutionError
from fedisign.auth.keys import load_public_key

if TYPE_CHECKING:
    from fedisign.client.signer import RequestSigner

logger = logging.getLogger(__name__)

ACTIVITY_ACCEPT = (
    'application/activity+json, '
    'application/ld+json; profile="https://www.w3.org/ns/activitystreams"'
)


@dataclass(frozen=True)
class ResolvedKey:
    """A public key obtained by dereferencing a keyId."""

    key_id: str
    owner: str | None
    public_key: RSAPublicKey
    public_key_pem: str


class KeyResolver(Protocol):
    """Maps a keyId to the public key it names."""

    async def resolve(self, key_id: str) -> ResolvedKey: ...


class StaticKeyResolver:
    """Resolves keys from an in-memory mapping of keyId to (owner, PEM)."""

    def __init__(self, keys: Mapping[str, tuple[str | None, str]] | None = None):
        self._keys: dict[str, ResolvedKey] = {}
        for key_id, (owner, pem) in (keys or {}).items():
            self.add(key_id, pem, owner)

    def add(self, key_id: str, public_key_pem: str, owner: str | None = None) -> None:
        self._keys[key_id] = ResolvedKey(
            key_id=key_id,
            owner=owner,
            public_key=load_public_key(public_key_pem),
            public_key_pem=public_key_pem,
        )

    async def resolve(self, key_id: str) -> ResolvedKey:
        key = self._keys.get(key_id)
        if key is None:
            raise KeyResolutionError(f"Unknown key: {key_id}")
        return key


class KeyCache:
    """TTL cache of resolved keys with at most one in-flight fetch per keyId.

    Entries are only stored after a fetch completes successfully, so a failed
    or cancelled fetch never leaves anything behind. Expired entries are swept
    on every store, and at most max_entries keys are held; when full, the entry
    closest to expiry is evicted.
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10000,
    ):
        self.ttl = ttl
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._entries: dict[str, tuple[ResolvedKey, float]] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key_id: str) -> ResolvedKey | None:
        entry = self._entries.get(key_id)
        if entry is None:
            return None
        key, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key_id]
            return None
        return key

    def put(self, key: ResolvedKey) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries.pop(key.key_id, None)
        while len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[oldest]
        self._entries[key.key_id] = (key, now + self.ttl)

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key_id in expired:
            del self._entries[key_id]

    def invalidate(self, key_id: str) -> None:
        self._entries.pop(key_id, None)

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_fetch(
        self, key_id: str, fetch: Callable[[str], Awaitable[ResolvedKey]]
    ) -> ResolvedKey:
        """Return a cached key or run fetch(key_id), sharing concurrent fetches."""
        cached = self.get(key_id)
        if cached is not None:
            return cached

        task = self._inflight.get(key_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key_id, fetch))
            self._inflight[key_id] = task
            task.add_done_callback(lambda t: self._fetch_done(key_id, t))

        # A cancelled waiter must not cancel the fetch other waiters share
        return await asyncio.shield(task)

    async def _fetch_and_store(self, key_id: str, fetch) -> ResolvedKey:
        key = await fetch(key_id)
        self.put(key)
        return key

    def _fetch_done(self, key_id: str, task: asyncio.Future) -> None:
        if self._inflight.get(key_id) is task:
            del self._inflight[key_id]
        if not task.cancelled():
            # Mark the exception retrieved; waiters already received it
            task.exception()


class HttpKeyResolver:
    """Fetches actor documents over HTTP and extracts the referenced key."""

    INITIAL_RETRY_DELAY = 0.5
    MAX_RETRY_DELAY = 8.0

    def __init__(
        self,
        timeout: float = 10.0,
        cache_ttl: float = 3600.0,
        cache_max_entries: int = 10000,
        max_attempts: int = 3,
        retry_delay: float | None = None,
        signer: "RequestSigner | None" = None,
        user_agent: str = "fedisign",
        cache: KeyCache | None = None,
    ):
        """Initialize resolver.

        Args:
            timeout: HTTP request timeout in seconds
            cache_ttl: Seconds a resolved key stays cached
            cache_max_entries: Most keys held in the cache at once
            max_attempts: Attempts per fetch for transient failures
            retry_delay: Initial backoff delay (doubles per attempt)
            signer: Optional signer for servers that require signed fetches
            user_agent: User-Agent header value
            cache: Shared cache instance (a private one is created otherwise)
        """
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = self.INITIAL_RETRY_DELAY if retry_delay is None else retry_delay
        self.signer = signer
        self.user_agent = user_agent
        if cache is None:
            cache = KeyCache(ttl=cache_ttl, max_entries=cache_max_entries)
        self.cache = cache

    async def resolve(self, key_id: str) -> ResolvedKey:
        return await self.cache.get_or_fetch(key_id, self._fetch_key)

    async def _fetch_key(self, key_id: str) -> ResolvedKey:
        """Fetch and parse the document behind key_id.

        Raises:
            KeyResolutionError: On network failure, bad status, or missing key
        """
        url, _fragment = urldefrag(key_id)
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise KeyResolutionError(f"keyId is not an HTTP(S) URL: {key_id}")

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await self._fetch_with_retry(
                client, url, parsed.netloc, parsed.path or "/", parsed.query
            )

        try:
            document = response.json()
        except ValueError as e:
            raise KeyResolutionError(f"Key document at {url} is not JSON") from e

        return self._extract_key(key_id, document)

    async def _fetch_with_retry(
        self, client: httpx.AsyncClient, url: str, host: str, path: str, query: str
    ) -> httpx.Response:
        """GET url, retrying transport errors and 5xx with exponential backoff."""
        delay = self.retry_delay

        for attempt in range(1, self.max_attempts + 1):
            headers = {"Accept": ACTIVITY_ACCEPT, "User-Agent": self.user_agent}
            if self.signer is not None:
                headers.update(self.signer.sign_request("GET", path, host=host, query=query))

            try:
                response = await client.get(url, headers=headers)
            except httpx.TransportError as e:
                logger.info(
                    "Key fetch %s failed (attempt %d/%d): %s", url, attempt, self.max_attempts, e
                )
                if attempt >= self.max_attempts:
                    raise KeyResolutionError(f"Failed to fetch {url}: {e}", transient=True) from e
            else:
                if response.status_code < 400:
                    logger.debug("Fetched key document %s", url)
                    return response
                if response.status_code < 500:
                    raise KeyResolutionError(
                        f"Key document {url} returned HTTP {response.status_code}"
                    )
                logger.info(
                    "Key fetch %s returned HTTP %d (attempt %d/%d)",
                    url,
                    response.status_code,
                    attempt,
                    self.max_attempts,
                )
                if attempt >= self.max_attempts:
                    raise KeyResolutionError(
                        f"Key document {url} returned HTTP {response.status_code}", transient=True
                    )

            await asyncio.sleep(delay)
            delay = min(delay * 2, self.MAX_RETRY_DELAY)

        raise KeyResolutionError(f"Failed to fetch {url}", transient=True)

    @staticmethod
    def _extract_key(key_id: str, document: object) -> ResolvedKey:
        if not isinstance(document, dict):
            raise KeyResolutionError(f"Key document for {key_id} is not an object")

        # The keyId may point at a standalone key document rather than an actor
        if document.get("id") == key_id and "publicKeyPem" in document:
            candidates = [document]
        else:
            public_key = document.get("publicKey")
            if not public_key:
                raise KeyResolutionError(f"No publicKey in document for {key_id}")
            candidates = public_key if isinstance(public_key, list) else [public_key]

        for candidate in candidates:
            if not isinstance(candidate, dict) or candidate.get("id") != key_id:
                continue
            pem = candidate.get("publicKeyPem")
            if not pem:
                raise KeyResolutionError(f"publicKey {key_id} has no publicKeyPem")
            try:
                public_key = load_public_key(pem)
            except KeyFormatError as e:
                raise KeyResolutionError(f"Unusable public key for {key_id}: {e}") from e
            return ResolvedKey(
                key_id=key_id,
                owner=candidate.get("owner") or document.get("id"),
                public_key=public_key,
                public_key_pem=pem,
            )

        raise KeyResolutionError(f"No matching publicKey found for {key_id}")
