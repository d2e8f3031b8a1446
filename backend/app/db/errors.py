"""Store-level error classification.

The only place that sniffs driver error codes. Callers ask
``is_missing_table(exc)`` instead of matching strings themselves.
"""

from sqlalchemy.exc import DBAPIError

# PostgreSQL: undefined_table
PG_UNDEFINED_TABLE = "42P01"


def is_missing_table(exc: BaseException) -> bool:
    """True when *exc* means an expected table has not been migrated yet."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    if getattr(orig, "pgcode", None) == PG_UNDEFINED_TABLE:
        return True
    if getattr(orig, "sqlstate", None) == PG_UNDEFINED_TABLE:
        return True
    message = str(orig).lower()
    if "no such table" in message:
        return True
    return "relation" in message and "does not exist" in message and "column" not in message
