"""Authentication module."""

from fedisign.auth.keys import KeyPair, KeyStore, generate_key_pair
from fedisign.auth.resolver import HttpKeyResolver, KeyResolver, StaticKeyResolver
from fedisign.auth.signature import SignatureVerifier, verify_signature

__all__ = [
    "HttpKeyResolver",
    "KeyPair",
    "KeyResolver",
    "KeyStore",
    "SignatureVerifier",
    "StaticKeyResolver",
    "generate_key_pair",
    "verify_signature",
]
