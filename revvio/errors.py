from __future__ import annotations

from sqlalchemy.exc import IntegrityError


class AuthenticationError(RuntimeError):
    """No usable session: missing, expired or invalid token, or unknown user."""

    def __init__(self, reason: str = "Not authenticated") -> None:
        super().__init__(reason)
        self.reason = reason


class ProfileStoreError(RuntimeError):
    """Base for store-layer failures the profile endpoint maps to a response."""


class ProfileConflictError(ProfileStoreError):
    pass


class InvalidUserReferenceError(ProfileStoreError):
    pass


# PostgreSQL SQLSTATE codes.
_PG_UNIQUE_VIOLATION = "23505"
_PG_FOREIGN_KEY_VIOLATION = "23503"

# MySQL server error numbers.
_MYSQL_DUP_ENTRY = 1062
_MYSQL_NO_REFERENCED_ROW = (1216, 1452)

_SQLITE_UNIQUE = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}
_SQLITE_FOREIGN_KEY = {"SQLITE_CONSTRAINT_FOREIGNKEY"}


def _driver_code(orig: BaseException | None) -> str | int | None:
    if orig is None:
        return None
    # sqlite3 (Python 3.11+)
    name = getattr(orig, "sqlite_errorname", None)
    if name:
        return name
    # psycopg 3 / psycopg2
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return code
    # PyMySQL: args = (errno, message)
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def classify_integrity_error(exc: IntegrityError) -> ProfileStoreError | None:
    """Map an IntegrityError to a tagged error using the driver's error code.

    Returns None when the code is not one the profile flow knows how to report.
    """
    code = _driver_code(exc.orig)
    if code in _SQLITE_UNIQUE or code == _PG_UNIQUE_VIOLATION or code == _MYSQL_DUP_ENTRY:
        return ProfileConflictError("A business profile already exists for this user")
    if code in _SQLITE_FOREIGN_KEY or code == _PG_FOREIGN_KEY_VIOLATION or code in _MYSQL_NO_REFERENCED_ROW:
        return InvalidUserReferenceError("Invalid user reference")
    return None
