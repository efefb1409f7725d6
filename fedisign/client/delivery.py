"""Signed delivery of activities to remote inboxes."""

import json
import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from fedisign.auth.errors import DeliveryError
from fedisign.client.signer import RequestSigner
from fedisign.models import ACTIVITY_JSON

logger = logging.getLogger(__name__)


def encode_activity(activity: dict[str, Any]) -> bytes:
    """Serialize an activity to the exact bytes that get digested and sent."""
    return json.dumps(activity, separators=(",", ":"), ensure_ascii=False).encode()


async def deliver(
    signer: RequestSigner,
    inbox_url: str,
    body: bytes | dict[str, Any],
    client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
    user_agent: str = "fedisign",
) -> httpx.Response:
    """Sign and POST a body to a remote inbox.

    Raises:
        SigningError: If the request cannot be signed (nothing is sent)
        DeliveryError: If the inbox answers with a non-2xx status
        httpx.TransportError: On network failure
    """
    if isinstance(body, dict):
        body = encode_activity(body)

    parsed = urlparse(inbox_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Inbox URL must be HTTP(S): {inbox_url}")

    headers = signer.sign_request(
        "POST",
        parsed.path or "/",
        host=parsed.netloc,
        body=body,
        query=parsed.query,
    )
    headers["Content-Type"] = ACTIVITY_JSON
    headers["User-Agent"] = user_agent

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as owned_client:
            response = await owned_client.post(inbox_url, content=body, headers=headers)
    else:
        response = await client.post(inbox_url, content=body, headers=headers)

    logger.info("Delivered to %s: HTTP %d", inbox_url, response.status_code)

    if not response.is_success:
        raise DeliveryError(
            f"Inbox {inbox_url} returned HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )
    return response
