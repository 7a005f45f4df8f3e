"""Health check routes for service monitoring and load balancing."""

import logging
import os
import subprocess
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from relaychat.infrastructure.app_factory import AppFactory
from relaychat.version import VERSION

from .dependencies import get_app_factory

logger = logging.getLogger(__name__)


def _resolve_git_commit() -> str:
    """Read the short git commit hash.

    Checks GIT_COMMIT env var first (set during image builds), then
    falls back to running git, then to 'unknown'.
    """
    from_env = os.environ.get("GIT_COMMIT", "").strip()
    if from_env:
        return from_env
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass
    return "unknown"


GIT_COMMIT = _resolve_git_commit()

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/heartbeat")
async def heartbeat() -> Dict[str, str]:
    """Minimal liveness probe."""
    return {"status": "ok"}


@router.get("/health")
async def health_check(factory: AppFactory = Depends(get_app_factory)) -> Dict[str, Any]:
    """Service status, version and whether the conversation store is open."""
    return {
        "status": "healthy" if factory.is_open else "degraded",
        "service": "relaychat",
        "version": VERSION,
        "git_commit": GIT_COMMIT,
        "store": "open" if factory.is_open else "closed",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
