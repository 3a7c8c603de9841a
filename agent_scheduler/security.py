"""Shared-secret check for the cron trigger endpoints."""

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from .config import settings

logger = logging.getLogger("agent_scheduler.security")


def _presented_token(authorization: str) -> str:
    scheme, _, token = authorization.strip().partition(" ")
    if token and scheme.lower() == "bearer":
        return token.strip()
    return authorization.strip()


def verify_cron_token(authorization: Optional[str] = Header(default=None)) -> None:
    """Accept ``Authorization: Bearer <CRON_SECRET_TOKEN>`` (or the bare token)."""
    expected = settings.CRON_SECRET_TOKEN
    if not expected:
        logger.warning("CRON_SECRET_TOKEN is not set; rejecting trigger request")
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not authorization or not secrets.compare_digest(
        _presented_token(authorization).encode(), expected.encode()
    ):
        logger.warning("Unauthorized cron trigger attempt")
        raise HTTPException(status_code=401, detail="Unauthorized")
