"""
Optimistic concurrency helpers.

Records that several requests may mutate at once carry an integer ``version``.
Writers read the record, compute the new state, and then apply it with
``conditional_update`` which only succeeds when the version is unchanged.
A lost race raises ConflictError; ``retry_on_conflict`` re-runs the whole
read-compute-write cycle a bounded number of times.
"""
from functools import wraps
from django.db.models import F
import logging

from core_backend.config import engine_settings
from core_backend.exceptions import ConflictError

logger = logging.getLogger(__name__)


def conditional_update(queryset, pk, expected_version, **changes):
    """
    Compare-and-swap ``changes`` onto the row ``pk`` if it is still at
    ``expected_version``. Bumps the version on success.

    Returns the new version.

    Raises:
        ConflictError: if another writer got there first (or the row is gone)
    """
    updated = queryset.filter(pk=pk, version=expected_version).update(
        version=F("version") + 1, **changes
    )
    if updated == 0:
        raise ConflictError(
            f"{queryset.model.__name__} {pk} changed since version {expected_version}",
            model=queryset.model.__name__,
            pk=pk,
        )
    return expected_version + 1


def retry_on_conflict(attempts=None):
    """
    Decorator: re-run the wrapped operation when it raises ConflictError.

    The wrapped callable must re-read its inputs on every call; nothing is
    carried over between attempts. After the last attempt the ConflictError
    propagates to the caller as a transient error.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            max_attempts = attempts or engine_settings.conflict_retry_attempts
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except ConflictError as e:
                    if attempt == max_attempts:
                        logger.warning(
                            f"{func.__qualname__}: giving up after {attempt} conflicting attempts ({e})"
                        )
                        raise
                    logger.warning(
                        f"{func.__qualname__}: write conflict on attempt {attempt}/{max_attempts}, retrying"
                    )

        return wrapper

    return decorator
