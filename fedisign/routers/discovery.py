"""Discovery endpoints: WebFinger and the actor profile document."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from fedisign.auth.dependencies import get_identity, get_key_store
from fedisign.auth.errors import KeyFormatError
from fedisign.auth.keys import KeyStore
from fedisign.models import ACTIVITY_JSON, JRD_JSON
from fedisign.services.identity import (
    ActorIdentity,
    build_actor_document,
    build_webfinger,
    matches_resource,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["discovery"])


@router.get("/.well-known/webfinger")
async def webfinger(
    resource: Annotated[str, Query()],
    identity: Annotated[ActorIdentity, Depends(get_identity)],
):
    """Resolve acct:user@domain to the actor URL (public endpoint)."""
    if not matches_resource(identity, resource):
        raise HTTPException(404, f"Unknown resource: {resource}")

    document = build_webfinger(identity)
    return JSONResponse(document.model_dump(by_alias=True), media_type=JRD_JSON)


@router.get("/actor")
async def actor(
    identity: Annotated[ActorIdentity, Depends(get_identity)],
    key_store: Annotated[KeyStore, Depends(get_key_store)],
):
    """Actor profile document publishing the public key (public endpoint)."""
    try:
        public_key_pem = key_store.public_key_pem
    except KeyFormatError as e:
        logger.error("Cannot serve actor document: %s", e)
        raise HTTPException(503, "Signing key not available")

    document = build_actor_document(identity, public_key_pem)
    return JSONResponse(document.model_dump(by_alias=True), media_type=ACTIVITY_JSON)
