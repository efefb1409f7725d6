"""Health and status endpoints."""

import os
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from fedisign.auth.dependencies import get_key_store
from fedisign.auth.keys import KeyStore
from fedisign.config import settings

router = APIRouter(tags=["health"])


@router.get("/", response_class=HTMLResponse)
async def hello():
    return "<h1>Hello</h1>"


@router.get("/health")
async def health():
    """Basic health check - always returns ok if service is running."""
    return {
        "status": "ok",
        "git_sha": os.environ.get("GIT_SHA", "unknown"),
        "build_date": os.environ.get("BUILD_DATE", "unknown"),
        "app_version": settings.app_version,
    }


@router.get("/ready")
async def ready(key_store: Annotated[KeyStore, Depends(get_key_store)]):
    """Readiness check - the actor key pair must be loaded to sign or publish."""
    checks = {"signing_key": "ok" if key_store.loaded else "error: not loaded"}
    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
    }
