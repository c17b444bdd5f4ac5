"""Tests for database error classification."""

from sqlalchemy.exc import IntegrityError

from identity_service.db.errors import is_unique_violation, violated_column


class _PgDiag:
    constraint_name = "accounts_username_key"


class _PgError(Exception):
    sqlstate = "23505"
    diag = _PgDiag()


def _integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO accounts ...", {}, orig)


def test_sqlite_unique_violation():
    error = _integrity_error(Exception("UNIQUE constraint failed: accounts.email"))

    assert is_unique_violation(error)
    assert violated_column(error, ("email", "username")) == "email"


def test_postgres_unique_violation():
    error = _integrity_error(_PgError("duplicate key value violates unique constraint"))

    assert is_unique_violation(error)
    assert violated_column(error, ("email", "username")) == "username"


def test_not_null_is_not_a_unique_violation():
    error = _integrity_error(Exception("NOT NULL constraint failed: accounts.role"))

    assert not is_unique_violation(error)
    assert violated_column(error, ("email", "username")) is None
