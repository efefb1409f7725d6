"""draft-cavage HTTP Signature client implementation (rsa-sha256)."""

from base64 import b64encode
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from fedisign.auth.canonical import (
    BODYLESS_SIGNED_HEADERS,
    DEFAULT_SIGNED_HEADERS,
    build_signing_string,
    compute_digest,
    format_http_date,
)
from fedisign.auth.errors import KeyFormatError, SigningError
from fedisign.auth.keys import KeyPair, load_private_key


def build_signature_header(key_id: str, headers: Sequence[str], signature: bytes) -> str:
    """Format the Signature header value."""
    headers_str = " ".join(h.lower() for h in headers)
    signature_b64 = b64encode(signature).decode()
    return f'keyId="{key_id}",headers="{headers_str}",signature="{signature_b64}"'


class RequestSigner:
    """Signs outbound HTTP requests on behalf of one actor key."""

    def __init__(
        self,
        private_key: RSAPrivateKey | None,
        key_id: str,
        include_query: bool = False,
    ):
        self.private_key = private_key
        self.key_id = key_id
        self.include_query = include_query

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        key_id: str,
        password: bytes | None = None,
        include_query: bool = False,
    ) -> "RequestSigner":
        """Load signer from a PEM private key file."""
        path = Path(path)
        try:
            key_pair = load_private_key(path.read_bytes(), password=password)
        except (OSError, KeyFormatError) as e:
            raise SigningError(f"Cannot load signing key from {path}: {e}") from e
        return cls(key_pair.private_key, key_id, include_query=include_query)

    @classmethod
    def from_key_pair(
        cls, key_pair: KeyPair, key_id: str, include_query: bool = False
    ) -> "RequestSigner":
        return cls(key_pair.private_key, key_id, include_query=include_query)

    def sign(self, signing_string: str) -> bytes:
        """Sign with RSASSA-PKCS1-v1_5 over SHA-256.

        Raises:
            SigningError: If the private key is absent or unusable
        """
        if self.private_key is None:
            raise SigningError("No private key available for signing")
        if not isinstance(self.private_key, RSAPrivateKey):
            raise SigningError(f"Unsupported signing key type: {type(self.private_key).__name__}")

        try:
            return self.private_key.sign(
                signing_string.encode(),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Signing failed: {e}") from e

    def sign_request(
        self,
        method: str,
        path: str,
        host: str,
        body: bytes | None = None,
        date: datetime | str | None = None,
        query: str = "",
    ) -> dict[str, str]:
        """Generate the headers for a signed request.

        Returns dict with 'Host', 'Date', 'Signature' and, when a body is
        given, 'Digest'. The caller attaches them and sends the request.
        """
        if isinstance(date, str):
            date_value = date
        else:
            date_value = format_http_date(date)

        headers = {"Host": host, "Date": date_value}
        if body is not None:
            headers["Digest"] = compute_digest(body)
            signed_headers = DEFAULT_SIGNED_HEADERS
        else:
            signed_headers = BODYLESS_SIGNED_HEADERS

        signing_string = build_signing_string(
            signed_headers,
            method,
            path,
            headers,
            query=query,
            include_query=self.include_query,
        )
        signature = self.sign(signing_string)
        headers["Signature"] = build_signature_header(self.key_id, signed_headers, signature)
        return headers
