"""Canonical signing strings for draft-cavage HTTP Signatures.

Signer and verifier both build the string here, so the exact bytes signed on
one end are the bytes checked on the other:

    (request-target): post /inbox
    host: example.org
    date: Mon, 19 Oct 2026 12:00:00 GMT
    digest: SHA-256=47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU=

Lines follow the order declared in the Signature header's `headers` field and
are joined with a single LF, with no trailing newline.
"""

import hashlib
from base64 import b64encode
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime

from fedisign.auth.errors import MalformedSignatureHeader

REQUEST_TARGET = "(request-target)"

DEFAULT_SIGNED_HEADERS: tuple[str, ...] = (REQUEST_TARGET, "host", "date", "digest")
BODYLESS_SIGNED_HEADERS: tuple[str, ...] = (REQUEST_TARGET, "host", "date")

DIGEST_PREFIX = "SHA-256="


def compute_digest(body: bytes) -> str:
    """Digest header value for a request body: SHA-256=base64(sha256(body))."""
    digest = hashlib.sha256(body).digest()
    return f"{DIGEST_PREFIX}{b64encode(digest).decode()}"


def format_http_date(when: datetime | None = None) -> str:
    """Render a Date header value in UTC with the literal GMT zone label."""
    when = when or datetime.now(UTC)
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return format_datetime(when.astimezone(UTC), usegmt=True)


def parse_http_date(value: str) -> datetime:
    """Parse a Date header value into an aware UTC datetime.

    Raises:
        ValueError: If the value is not an RFC 2822 date
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, IndexError) as e:
        raise ValueError(f"Invalid HTTP date: {value!r}") from e
    if parsed is None:
        raise ValueError(f"Invalid HTTP date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def request_target(method: str, path: str, query: str = "", include_query: bool = False) -> str:
    """Value of the (request-target) pseudo-header."""
    if not path.startswith("/"):
        raise ValueError(f"Request path must start with '/': {path!r}")
    if include_query and query:
        path = f"{path}?{query}"
    return f"{method.lower()} {path}"


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def build_signing_string(
    headers_to_sign: Sequence[str],
    method: str,
    path: str,
    headers: Mapping[str, str],
    query: str = "",
    include_query: bool = False,
) -> str:
    """Build the signing string for the declared headers, in declared order.

    Raises:
        MalformedSignatureHeader: If a declared header is absent from the request
    """
    lines = []
    for name in headers_to_sign:
        name = name.lower()
        if name == REQUEST_TARGET:
            lines.append(f"{REQUEST_TARGET}: {request_target(method, path, query, include_query)}")
            continue
        if name.startswith("("):
            raise MalformedSignatureHeader(f"Unsupported pseudo-header: {name}")

        value = _get_header(headers, name)
        if value is None:
            raise MalformedSignatureHeader(f"Signed header not present in request: {name}")
        lines.append(f"{name}: {value.strip()}")

    return "\n".join(lines)


def canonical_string(method: str, path: str, host: str, date: str, digest: str) -> str:
    """Signing string for the fixed `(request-target) host date digest` set."""
    return build_signing_string(
        DEFAULT_SIGNED_HEADERS,
        method,
        path,
        {"host": host, "date": date, "digest": digest},
    )
