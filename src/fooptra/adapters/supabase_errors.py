"""Translation of PostgREST failures into domain errors."""

import logging
from typing import Any

from supabase import PostgrestAPIError

from fooptra.domain.errors import ConsistencyConflict, RemoteOperationError

UNIQUE_VIOLATION = "23505"

_logger = logging.getLogger(__name__)


def execute(query: Any, action: str) -> Any:
    """Run a query builder, raising domain errors on failure."""
    try:
        return query.execute()
    except PostgrestAPIError as exc:
        if exc.code == UNIQUE_VIOLATION:
            message = f"Duplicate row while trying to {action}"
            raise ConsistencyConflict(message) from exc
        _logger.warning("Supabase failed to %s: %s", action, exc.message)
        raise RemoteOperationError(f"Failed to {action}") from exc
