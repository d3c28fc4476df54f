# -*- coding: utf-8 -*-
"""Bearer token check for the gateway endpoints."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _token_matches(token: str, allowed: list[str]) -> bool:
    # Compare against every configured token so timing does not reveal which one matched.
    matched = False
    for candidate in allowed:
        if hmac.compare_digest(token.encode("utf-8"), candidate.encode("utf-8")):
            matched = True
    return matched


async def require_bearer(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """FastAPI dependency; returns the presented token or answers 401."""
    allowed = request.app.state.settings.auth_tokens
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not allowed or not _token_matches(credentials.credentials, allowed):
        logger.warning("Rejected request to %s with an invalid token", request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
