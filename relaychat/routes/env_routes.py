"""Report whether a named secret is present in the process environment."""

import os
import re
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Query

router = APIRouter(prefix="/api", tags=["environment"])

_ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@router.get("/check-key")
async def check_key(key: Optional[str] = Query(default=None)) -> Dict[str, bool]:
    """Presence only; the value never leaves the process."""
    if not key:
        raise HTTPException(status_code=400, detail="Key parameter is required")
    if not _ENV_NAME_PATTERN.match(key):
        raise HTTPException(status_code=400, detail="Invalid environment variable name")
    return {"hasKey": bool(os.environ.get(key))}
