"""Best-effort persistence of captured visits."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from visitlog.domain.visits.models import Visit
    from visitlog.domain.visits.repositories import VisitRepository

logger = logging.getLogger(__name__)


async def record_visit(visit_repo: "VisitRepository", visit: "Visit") -> bool:
    """Insert and commit a visit, reporting failure instead of raising.

    The capture endpoint answers the client whatever happens here, so storage
    errors end in the log and a ``False`` return.
    """
    try:
        await visit_repo.add(visit, auto_commit=True)
    except Exception:
        logger.exception("Database error while storing visit from %s", visit.ip)
        try:
            await visit_repo.session.rollback()
        except Exception:
            logger.exception("Rollback after failed visit insert also failed")
        return False
    return True
