"""FastAPI authentication dependencies."""

import logging
from typing import Annotated

from fastapi import Depends, Request

from fedisign.auth.keys import KeyStore
from fedisign.auth.resolver import HttpKeyResolver, KeyResolver
from fedisign.auth.signature import SignatureVerifier, VerifiedRequest, verify_signature
from fedisign.client.signer import RequestSigner
from fedisign.config import settings
from fedisign.services.identity import ActorIdentity

logger = logging.getLogger(__name__)

# Global singletons, built on first use
_key_store: KeyStore | None = None
_key_resolver: KeyResolver | None = None


def get_key_store() -> KeyStore:
    """Get or create key store singleton."""
    global _key_store
    if _key_store is None:
        _key_store = KeyStore(settings.private_key_path, settings.public_key_path)
    return _key_store


def get_identity() -> ActorIdentity:
    """Local actor identity derived from settings."""
    return ActorIdentity.from_settings(settings)


def get_key_resolver() -> KeyResolver:
    """Get or create the HTTP key resolver singleton (its cache lives with it)."""
    global _key_resolver
    if _key_resolver is None:
        signer = None
        if settings.sign_key_fetches:
            key_store = get_key_store()
            if key_store.loaded:
                identity = get_identity()
                signer = RequestSigner.from_key_pair(
                    key_store.key_pair,
                    identity.key_id,
                    include_query=settings.include_query_in_request_target,
                )
            else:
                logger.warning("sign_key_fetches is set but no key pair is loaded")
        _key_resolver = HttpKeyResolver(
            timeout=settings.key_fetch_timeout,
            cache_ttl=settings.key_cache_ttl,
            cache_max_entries=settings.key_cache_max_entries,
            max_attempts=settings.key_fetch_max_attempts,
            signer=signer,
            user_agent=settings.user_agent,
        )
    return _key_resolver


def get_verifier(
    resolver: Annotated[KeyResolver, Depends(get_key_resolver)],
) -> SignatureVerifier:
    return SignatureVerifier(
        resolver,
        max_clock_skew=settings.signature_max_clock_skew,
        include_query=settings.include_query_in_request_target,
    )


async def require_signature(
    request: Request,
    verifier: Annotated[SignatureVerifier, Depends(get_verifier)],
) -> VerifiedRequest:
    """Dependency that requires a valid HTTP signature.

    Returns the accepted verdict (key_id and key owner).
    """
    return await verify_signature(request, verifier)


# Type alias for signed routes
VerifiedSignature = Annotated[VerifiedRequest, Depends(require_signature)]
