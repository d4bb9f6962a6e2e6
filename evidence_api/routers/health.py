from __future__ import annotations

import logging
import os
import subprocess
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from evidence_engine import ImageVerifier, StoreIOError

from ..config import settings
from ..dependencies import get_verifier
from ..schemas.health import HealthResponse, VersionResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _get_git_sha() -> str | None:
    """Get current git commit SHA."""
    # First check environment variable (set during Docker build)
    git_sha = os.environ.get("GIT_SHA")
    if git_sha:
        return git_sha
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass
    return None


@router.get("/health", response_model=HealthResponse)
async def health_check(verifier: ImageVerifier = Depends(get_verifier)) -> HealthResponse:
    """Liveness check that also confirms the fingerprint history is readable."""
    store_state = "ok"
    try:
        verifier.repository.read_all()
    except StoreIOError as e:
        logger.error(f"Health check could not read fingerprint store: {e}")
        store_state = "error"
    return HealthResponse(
        status="ok" if store_state == "ok" else "degraded",
        store=store_state,
        timestamp=datetime.now(timezone.utc),
        service="evidence-verify",
        version=settings.api_version,
        git_sha=_get_git_sha(),
    )


@router.get("/version", response_model=VersionResponse)
async def version() -> VersionResponse:
    """Return service version information."""
    return VersionResponse(
        service="evidence-verify",
        version=settings.api_version,
        git_sha=_get_git_sha(),
    )
