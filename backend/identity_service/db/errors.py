"""Database error helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

# Failures of the store itself: driver/ORM errors and dropped connections.
STORE_ERRORS = (SQLAlchemyError, OSError)


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError indicates a unique-constraint conflict."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == "23505":
        return True
    message = str(original or error).lower()
    return "duplicate key" in message or "unique constraint" in message


def violated_column(error: IntegrityError, candidates: tuple[str, ...]) -> str | None:
    """Best-effort name of the column behind a unique violation.

    Postgres reports the constraint (``accounts_email_key``), SQLite the
    qualified column (``accounts.email``); both embed the column name.
    """
    original = getattr(error, "orig", None)
    constraint = (
        getattr(getattr(original, "diag", None), "constraint_name", None)
        or getattr(getattr(original, "__cause__", None), "constraint_name", None)
    )
    if constraint:
        for column in candidates:
            if f"_{column}_" in f"_{constraint.lower()}_":
                return column

    # SQLite: "UNIQUE constraint failed: accounts.email"
    first_line = str(original or error).splitlines()[0].lower()
    for column in candidates:
        if f".{column}" in first_line or f"_{column}_" in first_line:
            return column
    return None


__all__ = ["STORE_ERRORS", "is_unique_violation", "violated_column"]
