"""Shared FastAPI dependencies and error translation for the routers."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from runboard.database import get_db
from runboard.exceptions import (
    CoachConfigurationError,
    InsufficientDataError,
    RunboardError,
    StravaAPIError,
    StravaAuthError,
    StravaRateLimitError,
)
from runboard.models.database_models import Profile


logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[RunboardError], int]] = [
    (StravaAuthError, 401),
    (StravaRateLimitError, 429),
    (StravaAPIError, 502),
    (InsufficientDataError, 400),
    (CoachConfigurationError, 500),
]


def get_current_user_id(
    db: Annotated[Session, Depends(get_db)],
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the dashboard owner from the ``X-User-Id`` header.

    The id is issued by the external identity provider; a profile row is
    created the first time an id is seen.
    """

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    if len(user_id) > 64:
        raise HTTPException(status_code=400, detail="Invalid X-User-Id header")

    if db.get(Profile, user_id) is None:
        db.add(Profile(id=user_id))
        db.flush()
        logger.info("Created profile for %s", user_id)
    return user_id


CurrentUser = Annotated[str, Depends(get_current_user_id)]
DbSession = Annotated[Session, Depends(get_db)]


def to_http_exception(err: RunboardError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(err, error_type):
            return HTTPException(status_code=status_code, detail=str(err))
    return HTTPException(status_code=400, detail=str(err))
