"""Unit tests for client request signing."""

import re
from base64 import b64decode
from datetime import UTC, datetime

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from fedisign.auth.canonical import canonical_string, compute_digest
from fedisign.auth.errors import SigningError
from fedisign.client.signer import RequestSigner, build_signature_header


def _verify(public_key, signature: bytes, message: str) -> None:
    public_key.verify(signature, message.encode(), padding.PKCS1v15(), hashes.SHA256())


def _signature_field(header: str, name: str) -> str:
    match = re.search(rf'{name}="([^"]*)"', header)
    assert match, f"{name} missing from {header}"
    return match.group(1)


class TestBuildSignatureHeader:
    """Tests for Signature header formatting."""

    def test_format(self):
        header = build_signature_header(
            "https://example.org/actor#main-key",
            ["(request-target)", "host", "date", "digest"],
            b"\x01\x02\x03",
        )

        assert header == (
            'keyId="https://example.org/actor#main-key",'
            'headers="(request-target) host date digest",'
            'signature="AQID"'
        )


class TestRequestSigner:
    """Tests for RequestSigner."""

    def test_sign_round_trip(self, request_signer, rsa_keypair):
        """Signature verifies with the matching public key."""
        message = canonical_string("POST", "/inbox", "example.org", "date", "digest")

        signature = request_signer.sign(message)

        _verify(rsa_keypair.public_key, signature, message)

    def test_sign_fails_with_other_key(self, request_signer, other_keypair):
        """Signature does not verify with an unrelated public key."""
        message = "host: example.org"

        signature = request_signer.sign(message)

        with pytest.raises(InvalidSignature):
            _verify(other_keypair.public_key, signature, message)

    def test_pkcs1v15_is_deterministic(self, request_signer):
        assert request_signer.sign("same") == request_signer.sign("same")

    def test_missing_key(self):
        signer = RequestSigner(None, "https://example.org/actor#main-key")

        with pytest.raises(SigningError, match="No private key"):
            signer.sign("anything")

    def test_non_rsa_key(self):
        signer = RequestSigner(Ed25519PrivateKey.generate(), "https://example.org/actor#main-key")

        with pytest.raises(SigningError, match="Unsupported signing key type"):
            signer.sign("anything")

    def test_from_file(self, key_files, identity):
        private_path, _ = key_files

        signer = RequestSigner.from_file(private_path, identity.key_id)

        assert signer.key_id == identity.key_id
        assert signer.private_key is not None

    def test_from_file_query_policy(self, key_files, identity):
        private_path, _ = key_files

        assert RequestSigner.from_file(private_path, identity.key_id).include_query is False
        signer = RequestSigner.from_file(private_path, identity.key_id, include_query=True)
        assert signer.include_query is True

    def test_from_missing_file(self, tmp_path, identity):
        with pytest.raises(SigningError, match="Cannot load signing key"):
            RequestSigner.from_file(tmp_path / "nope.pem", identity.key_id)

    def test_from_corrupt_file(self, tmp_path, identity):
        path = tmp_path / "private.pem"
        path.write_text("garbage")

        with pytest.raises(SigningError):
            RequestSigner.from_file(path, identity.key_id)


class TestSignRequest:
    """Tests for full request header generation."""

    def test_post_headers(self, request_signer, rsa_keypair, identity):
        """POST with a body carries Host, Date, Digest and Signature."""
        body = b'{"type": "Create"}'
        when = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)

        headers = request_signer.sign_request(
            "POST", "/inbox", host="mastodon.online", body=body, date=when
        )

        assert headers["Host"] == "mastodon.online"
        assert headers["Date"] == "Mon, 19 Oct 2026 12:00:00 GMT"
        assert headers["Digest"] == compute_digest(body)

        sig = headers["Signature"]
        assert _signature_field(sig, "keyId") == identity.key_id
        assert _signature_field(sig, "headers") == "(request-target) host date digest"

        expected = canonical_string(
            "POST", "/inbox", "mastodon.online", headers["Date"], headers["Digest"]
        )
        _verify(rsa_keypair.public_key, b64decode(_signature_field(sig, "signature")), expected)

    def test_get_headers_omit_digest(self, request_signer):
        """Requests without a body sign (request-target) host date only."""
        headers = request_signer.sign_request("GET", "/actor", host="example.org")

        assert "Digest" not in headers
        assert _signature_field(headers["Signature"], "headers") == "(request-target) host date"

    def test_empty_body_still_digested(self, request_signer):
        headers = request_signer.sign_request("POST", "/inbox", host="example.org", body=b"")

        assert headers["Digest"] == compute_digest(b"")

    def test_date_defaults_to_now(self, request_signer):
        headers = request_signer.sign_request("GET", "/actor", host="example.org")

        assert headers["Date"].endswith(" GMT")

    def test_explicit_date_string(self, request_signer):
        date = "Mon, 19 Oct 2026 12:00:00 GMT"

        headers = request_signer.sign_request("GET", "/actor", host="example.org", date=date)

        assert headers["Date"] == date

    def test_query_included_when_configured(self, rsa_keypair, identity):
        signer = RequestSigner.from_key_pair(rsa_keypair, identity.key_id, include_query=True)
        date = "Mon, 19 Oct 2026 12:00:00 GMT"

        headers = signer.sign_request(
            "GET", "/outbox", host="example.org", date=date, query="page=1"
        )

        expected = f"(request-target): get /outbox?page=1\nhost: example.org\ndate: {date}"
        signature = b64decode(_signature_field(headers["Signature"], "signature"))
        _verify(rsa_keypair.public_key, signature, expected)

    def test_signing_failure_propagates(self, identity):
        signer = RequestSigner(None, identity.key_id)

        with pytest.raises(SigningError):
            signer.sign_request("POST", "/inbox", host="example.org", body=b"{}")
