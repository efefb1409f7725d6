"""Fedisign - ActivityPub actor identity and HTTP Signature authentication."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fedisign.auth.dependencies import get_identity, get_key_store
from fedisign.auth.errors import KeyFormatError
from fedisign.routers import discovery, health, inbox

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

_log_handler = logging.StreamHandler()
_log_handler.setFormatter(
    logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
)
logging.getLogger("fedisign").setLevel(LOG_LEVEL)
logging.getLogger("fedisign").addHandler(_log_handler)

logger = logging.getLogger(__name__)


def load_signing_key() -> None:
    """Load the actor key pair on startup."""
    key_store = get_key_store()
    if key_store.loaded:
        return

    try:
        key_store.load()
    except KeyFormatError as e:
        logger.error(
            "Signing key unavailable: %s - run scripts/generate_keypair.py; "
            "actor document will return 503",
            e,
        )
        return

    identity = get_identity()
    logger.info("Serving actor %s (key %s)", identity.canonical_id, identity.key_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup."""
    load_signing_key()
    yield


app = FastAPI(
    title="Fedisign",
    description="ActivityPub actor discovery and HTTP Signature authentication",
    version="0.1.0",
    lifespan=lifespan,
)

# Public endpoints
app.include_router(health.router)
app.include_router(discovery.router)

# Signed endpoints
app.include_router(inbox.router)
