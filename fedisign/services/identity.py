"""Local actor identity and its published discovery documents."""

from dataclasses import dataclass

from fedisign.config import Settings
from fedisign.models import (
    ACTIVITY_JSON,
    ActorDocument,
    ActorPublicKey,
    WebfingerLink,
    WebfingerResponse,
)

KEY_FRAGMENT = "main-key"


@dataclass(frozen=True)
class ActorIdentity:
    """Canonical URLs for the local actor. Immutable for the process lifetime."""

    canonical_id: str
    key_id: str
    preferred_name: str
    inbox: str
    domain: str

    @classmethod
    def for_domain(cls, username: str, domain: str) -> "ActorIdentity":
        canonical_id = f"https://{domain}/actor"
        return cls(
            canonical_id=canonical_id,
            key_id=f"{canonical_id}#{KEY_FRAGMENT}",
            preferred_name=username,
            inbox=f"https://{domain}/inbox",
            domain=domain,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ActorIdentity":
        return cls.for_domain(settings.actor_username, settings.actor_domain)

    @property
    def acct(self) -> str:
        return f"acct:{self.preferred_name}@{self.domain}"


def build_webfinger(identity: ActorIdentity) -> WebfingerResponse:
    """Identity-resolution document pointing acct: at the actor URL."""
    return WebfingerResponse(
        subject=identity.acct,
        links=[WebfingerLink(rel="self", type=ACTIVITY_JSON, href=identity.canonical_id)],
    )


def build_actor_document(identity: ActorIdentity, public_key_pem: str) -> ActorDocument:
    """Actor profile document publishing the signing key at identity.key_id."""
    return ActorDocument(
        id=identity.canonical_id,
        preferred_username=identity.preferred_name,
        inbox=identity.inbox,
        public_key=ActorPublicKey(
            id=identity.key_id,
            owner=identity.canonical_id,
            public_key_pem=public_key_pem,
        ),
    )


def matches_resource(identity: ActorIdentity, resource: str) -> bool:
    """Whether a WebFinger resource names this actor (acct: URI or actor URL)."""
    resource = resource.strip()
    if resource == identity.canonical_id:
        return True
    if resource.startswith("acct:"):
        resource = resource[len("acct:"):]
    user, sep, domain = resource.lstrip("@").partition("@")
    return (
        bool(sep)
        and user.lower() == identity.preferred_name.lower()
        and domain.lower() == identity.domain.lower()
    )
