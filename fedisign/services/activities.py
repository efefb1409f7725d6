"""ActivityStreams activity builders."""

import uuid
from datetime import UTC, datetime
from typing import Any

from fedisign.models import ACTIVITYSTREAMS_CONTEXT
from fedisign.services.identity import ActorIdentity

PUBLIC_COLLECTION = "https://www.w3.org/ns/activitystreams#Public"


def build_create_note(
    identity: ActorIdentity,
    content: str,
    in_reply_to: str | None = None,
    to: list[str] | None = None,
    published: datetime | None = None,
    object_id: str | None = None,
) -> dict[str, Any]:
    """Build a Create activity wrapping a Note authored by the local actor."""
    published = (published or datetime.now(UTC)).astimezone(UTC)
    object_id = object_id or f"https://{identity.domain}/notes/{uuid.uuid4()}"

    note: dict[str, Any] = {
        "id": object_id,
        "type": "Note",
        "published": published.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "attributedTo": identity.canonical_id,
        "content": content,
        "to": to or [PUBLIC_COLLECTION],
    }
    if in_reply_to:
        note["inReplyTo"] = in_reply_to

    return {
        "@context": ACTIVITYSTREAMS_CONTEXT,
        "id": f"{object_id}/activity",
        "type": "Create",
        "actor": identity.canonical_id,
        "object": note,
    }
