"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient

from fedisign.auth.dependencies import get_key_resolver
from fedisign.auth.keys import (
    KeyPair,
    KeyStore,
    generate_key_pair,
    serialize_private_key,
    serialize_public_key,
)
from fedisign.auth.resolver import StaticKeyResolver
from fedisign.client.signer import RequestSigner
from fedisign.services.identity import ActorIdentity


@pytest.fixture(scope="session")
def rsa_keypair() -> KeyPair:
    """RSA key pair shared across the session (generation is slow)."""
    return generate_key_pair(2048)


@pytest.fixture(scope="session")
def other_keypair() -> KeyPair:
    """A second, unrelated RSA key pair."""
    return generate_key_pair(2048)


@pytest.fixture
def identity() -> ActorIdentity:
    """Local actor alice@example.org."""
    return ActorIdentity.for_domain("alice", "example.org")


@pytest.fixture
def remote_identity() -> ActorIdentity:
    """Remote actor bob@remote.example that sends to our inbox."""
    return ActorIdentity.for_domain("bob", "remote.example")


@pytest.fixture
def request_signer(rsa_keypair, identity) -> RequestSigner:
    """Signer for alice's key."""
    return RequestSigner.from_key_pair(rsa_keypair, identity.key_id)


@pytest.fixture
def remote_signer(other_keypair, remote_identity) -> RequestSigner:
    """Signer for bob's key."""
    return RequestSigner.from_key_pair(other_keypair, remote_identity.key_id)


@pytest.fixture
def static_resolver(rsa_keypair, other_keypair, identity, remote_identity) -> StaticKeyResolver:
    """Resolver that knows both alice's and bob's public keys."""
    resolver = StaticKeyResolver()
    resolver.add(identity.key_id, serialize_public_key(rsa_keypair), identity.canonical_id)
    resolver.add(
        remote_identity.key_id,
        serialize_public_key(other_keypair),
        remote_identity.canonical_id,
    )
    return resolver


@pytest.fixture
def key_files(tmp_path, rsa_keypair):
    """private.pem / public.pem written to a temp directory."""
    private_path = tmp_path / "private.pem"
    public_path = tmp_path / "public.pem"
    private_path.write_text(serialize_private_key(rsa_keypair))
    public_path.write_text(serialize_public_key(rsa_keypair))
    return private_path, public_path


@pytest.fixture
def app_with_keys(key_files, static_resolver, monkeypatch):
    """FastAPI app serving alice@example.org with keys loaded."""
    private_path, public_path = key_files
    monkeypatch.setenv("ACTOR_DOMAIN", "example.org")
    monkeypatch.setenv("ACTOR_USERNAME", "alice")
    monkeypatch.setenv("PRIVATE_KEY_PATH", str(private_path))
    monkeypatch.setenv("PUBLIC_KEY_PATH", str(public_path))

    # Reload settings with new env
    from fedisign.config import Settings

    test_settings = Settings()
    monkeypatch.setattr("fedisign.config.settings", test_settings)
    monkeypatch.setattr("fedisign.auth.dependencies.settings", test_settings)

    # Reset singletons, then load the key store from the temp files
    import fedisign.auth.dependencies as deps

    monkeypatch.setattr(deps, "_key_store", None)
    monkeypatch.setattr(deps, "_key_resolver", None)
    key_store = deps.get_key_store()
    key_store.load()

    from fedisign.main import app

    app.dependency_overrides[get_key_resolver] = lambda: static_resolver

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(app_with_keys):
    """TestClient for the configured app."""
    return TestClient(app_with_keys)


@pytest.fixture
def empty_key_store(tmp_path) -> KeyStore:
    """KeyStore pointing at paths that do not exist yet."""
    return KeyStore(tmp_path / "keys" / "private.pem", tmp_path / "keys" / "public.pem")
