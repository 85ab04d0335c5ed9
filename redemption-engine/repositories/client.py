"""
Supabase client initialization and query execution.

This module contains *only* the database connection setup and the single
helper every Supabase repository uses to run a query. The client is created on
first use so that importing repositories (or running the in-memory backend)
never requires credentials.

Environment variables required for the supabase backend:
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Optional

import httpx

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config import get_settings

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation, surfaced by PostgREST as APIError.code.
UNIQUE_VIOLATION = "23505"

_RETRY_BACKOFF_SECONDS = 0.2


class DataStoreUnavailableError(RuntimeError):
    """Raised when the data store cannot be reached after transport retries."""


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Official Supabase Python client instance shared by all repositories."""

    url, key = get_settings().require_supabase_credentials()
    return create_client(url, key)


def execute(
    query: Any,
    *,
    operation: str,
    idempotent: bool = True,
    max_retries: Optional[int] = None,
) -> Any:
    """
    Execute a PostgREST query/RPC builder and return its response.

    Transport failures are retried here and only here. Reads (idempotent=True)
    retry any transport error; writes retry only when the connection was never
    established, so a request that may have reached the database is not sent
    twice.

    Raises:
        DataStoreUnavailableError: transport failure after all retries
        RuntimeError: the response carried an error payload
        postgrest.exceptions.APIError: PostgREST rejected the request
    """

    retries = get_settings().datastore_max_retries if max_retries is None else max_retries
    attempt = 0

    while True:
        attempt += 1
        try:
            response = query.execute()
            break
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            failure: Exception = exc
        except httpx.TransportError as exc:
            if not idempotent:
                raise DataStoreUnavailableError(f"Failed to {operation}: {exc}") from exc
            failure = exc

        if attempt > retries:
            raise DataStoreUnavailableError(
                f"Failed to {operation} after {attempt} attempts: {failure}"
            ) from failure

        logger.warning(
            f"Transport error during '{operation}', retrying",
            extra={"operation": operation, "attempt": attempt, "error": str(failure)},
        )
        time.sleep(_RETRY_BACKOFF_SECONDS * attempt)

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {operation}: {error}")
    return response


def rows_of(response: Any) -> list[dict[str, Any]]:
    return list(getattr(response, "data", None) or [])


__all__ = [
    "DataStoreUnavailableError",
    "UNIQUE_VIOLATION",
    "execute",
    "get_supabase",
    "rows_of",
]
