"""Discovery document models (WebFinger and ActivityPub actor)."""

from pydantic import BaseModel, ConfigDict, Field

ACTIVITYSTREAMS_CONTEXT = "https://www.w3.org/ns/activitystreams"
SECURITY_CONTEXT = "https://w3id.org/security/v1"

ACTIVITY_JSON = "application/activity+json"
JRD_JSON = "application/jrd+json"


class WebfingerLink(BaseModel):
    """A link in a WebFinger response."""

    rel: str
    type: str = ACTIVITY_JSON
    href: str


class WebfingerResponse(BaseModel):
    """Identity-resolution document for acct: URIs."""

    subject: str
    links: list[WebfingerLink] = Field(default_factory=list)


class ActorPublicKey(BaseModel):
    """Public key block embedded in an actor document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner: str
    public_key_pem: str = Field(alias="publicKeyPem")


class ActorDocument(BaseModel):
    """ActivityPub actor profile document."""

    model_config = ConfigDict(populate_by_name=True)

    context: list[str] = Field(
        default_factory=lambda: [ACTIVITYSTREAMS_CONTEXT, SECURITY_CONTEXT],
        alias="@context",
    )
    id: str
    type: str = "Person"
    preferred_username: str = Field(alias="preferredUsername")
    inbox: str
    public_key: ActorPublicKey = Field(alias="publicKey")
