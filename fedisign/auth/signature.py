"""draft-cavage HTTP Signature verification (rsa-sha256)."""

import binascii
import hmac
import logging
import re
from base64 import b64decode
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from fastapi import HTTPException, Request

from fedisign.auth.canonical import (
    REQUEST_TARGET,
    build_signing_string,
    compute_digest,
    parse_http_date,
)
from fedisign.auth.errors import (
    DigestMismatch,
    MalformedSignatureHeader,
    SignatureMismatch,
    StaleTimestamp,
    VerificationError,
)
from fedisign.auth.resolver import KeyResolver

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("rsa-sha256", "hs2019")

_PARAM_RE = re.compile(r'\s*(\w+)\s*=\s*"((?:[^"\\]|\\.)*)"\s*(?:,|$)')


@dataclass(frozen=True)
class SignatureHeader:
    """Parsed Signature header."""

    key_id: str
    headers: tuple[str, ...]
    signature: bytes
    algorithm: str | None = None


@dataclass(frozen=True)
class VerifiedRequest:
    """Accepted verdict for an inbound request."""

    key_id: str
    owner: str | None
    headers: tuple[str, ...]


def parse_signature_header(value: str | None) -> SignatureHeader:
    """Parse a Signature header value.

    Format: keyId="...",headers="(request-target) host date digest",signature="..."

    Raises:
        MalformedSignatureHeader: On missing fields, bad base64, or an unsupported algorithm
    """
    if not value:
        raise MalformedSignatureHeader("Missing Signature header")

    params: dict[str, str] = {}
    pos = 0
    while pos < len(value):
        match = _PARAM_RE.match(value, pos)
        if not match:
            raise MalformedSignatureHeader("Invalid Signature header format")
        params[match.group(1)] = match.group(2).replace('\\"', '"')
        pos = match.end()

    for field in ("keyId", "headers", "signature"):
        if not params.get(field):
            raise MalformedSignatureHeader(f"Missing {field} in Signature header")

    algorithm = params.get("algorithm")
    if algorithm is not None and algorithm.lower() not in SUPPORTED_ALGORITHMS:
        raise MalformedSignatureHeader(f"Unsupported algorithm: {algorithm}")

    try:
        signature = b64decode(params["signature"], validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedSignatureHeader("Signature is not valid base64") from e

    headers = tuple(h.lower() for h in params["headers"].split())
    if len(set(headers)) != len(headers):
        raise MalformedSignatureHeader("Duplicate header in signed headers list")

    return SignatureHeader(
        key_id=params["keyId"],
        headers=headers,
        signature=signature,
        algorithm=algorithm,
    )


class SignatureVerifier:
    """Verifies HTTP Signatures on inbound requests."""

    # Signature validity window (seconds)
    MAX_CLOCK_SKEW = 300  # 5 minutes

    REQUIRED_HEADERS = (REQUEST_TARGET, "host", "date")

    def __init__(
        self,
        resolver: KeyResolver,
        max_clock_skew: int | None = None,
        include_query: bool = False,
        required_headers: Sequence[str] | None = None,
    ):
        self.resolver = resolver
        self.max_clock_skew = self.MAX_CLOCK_SKEW if max_clock_skew is None else max_clock_skew
        self.include_query = include_query
        self.required_headers = tuple(required_headers or self.REQUIRED_HEADERS)

    async def verify(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        body: bytes = b"",
        query: str = "",
        now: datetime | None = None,
    ) -> VerifiedRequest:
        """Verify a request, return the verdict if valid.

        Raises:
            VerificationError: A subclass naming the specific rejection
        """
        try:
            return await self._verify(method, path, headers, body, query, now)
        except VerificationError as e:
            logger.warning("Rejected %s %s: %s (%s)", method.upper(), path, e.reason, e)
            raise

    async def _verify(self, method, path, headers, body, query, now) -> VerifiedRequest:
        headers = {k.lower(): v for k, v in headers.items()}

        # HeadersParsed
        sig = parse_signature_header(headers.get("signature"))
        missing = [h for h in self.required_headers if h not in sig.headers]
        if body and "digest" not in sig.headers:
            missing.append("digest")
        if missing:
            raise MalformedSignatureHeader(f"Signature does not cover: {' '.join(missing)}")

        self._check_date(headers.get("date"), now)
        self._check_digest(headers.get("digest"), body)

        # CanonicalRebuilt, in the order the signer declared
        try:
            signing_string = build_signing_string(
                sig.headers,
                method,
                path,
                headers,
                query=query,
                include_query=self.include_query,
            )
        except ValueError as e:
            raise MalformedSignatureHeader(str(e)) from e

        # KeyResolved
        key = await self.resolver.resolve(sig.key_id)

        # Verdict
        try:
            key.public_key.verify(
                sig.signature,
                signing_string.encode(),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature:
            raise SignatureMismatch(f"Invalid signature for {sig.key_id}")

        logger.debug("Verified signature from %s", sig.key_id)
        return VerifiedRequest(key_id=sig.key_id, owner=key.owner, headers=sig.headers)

    def _check_date(self, date_header: str | None, now: datetime | None) -> None:
        if not date_header:
            raise MalformedSignatureHeader("Missing Date header")
        try:
            sent_at = parse_http_date(date_header)
        except ValueError:
            raise StaleTimestamp(f"Unparseable Date header: {date_header}")

        now = now or datetime.now(UTC)
        age = (now - sent_at).total_seconds()
        if abs(age) > self.max_clock_skew:
            raise StaleTimestamp(f"Date is {int(age)}s away from server time")

    def _check_digest(self, digest_header: str | None, body: bytes) -> None:
        if digest_header is None:
            if body:
                raise DigestMismatch("Missing Digest header for request body")
            return

        # A Digest header may list several algorithms; only SHA-256 is checked
        expected = compute_digest(body)
        for candidate in digest_header.split(","):
            candidate = candidate.strip()
            if candidate[:8].upper() == "SHA-256=":
                if hmac.compare_digest(candidate[8:], expected[8:]):
                    return
                raise DigestMismatch("Digest does not match request body")
        raise DigestMismatch("Digest header has no SHA-256 value")


async def verify_signature(request: Request, verifier: SignatureVerifier) -> VerifiedRequest:
    """Verify a FastAPI request, mapping any rejection to 401."""
    body = await request.body()
    try:
        return await verifier.verify(
            request.method,
            request.url.path,
            request.headers,
            body,
            query=request.url.query,
        )
    except VerificationError as e:
        raise HTTPException(401, str(e))
