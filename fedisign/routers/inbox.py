"""Inbox endpoint accepting signed activities."""

import json
import logging

from fastapi import APIRouter, HTTPException, Request

from fedisign.auth.dependencies import VerifiedSignature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["inbox"])


def _actor_id(activity: dict) -> str | None:
    actor = activity.get("actor")
    if isinstance(actor, dict):
        actor = actor.get("id")
    return actor if isinstance(actor, str) else None


@router.post("/inbox", status_code=202)
async def inbox(request: Request, verified: VerifiedSignature):
    """Accept an activity whose signature verifies against its actor's key."""
    body = await request.body()
    try:
        activity = json.loads(body)
    except ValueError:
        raise HTTPException(400, "Invalid JSON body")
    if not isinstance(activity, dict):
        raise HTTPException(400, "Activity must be a JSON object")

    actor = _actor_id(activity)
    if verified.owner is not None and actor != verified.owner:
        logger.warning(
            "Rejected %s: actor %s does not own key %s",
            activity.get("type"),
            actor,
            verified.key_id,
        )
        raise HTTPException(401, "Activity actor does not match signing key owner")

    logger.info("Accepted %s from %s", activity.get("type"), actor)
    return {"status": "accepted"}
