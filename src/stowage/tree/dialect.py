"""Dialect-aware helpers — engine dialect names, constraint error classification."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.exc import IntegrityError
    from sqlalchemy.ext.asyncio import AsyncEngine

# SQLSTATE for unique_violation
_PG_UNIQUE_VIOLATION = "23505"
# SQL Server: 2601 duplicate key in unique index, 2627 unique constraint
_MSSQL_UNIQUE_CODES = ("2601", "2627")


def get_dialect(engine: Engine | AsyncEngine) -> str:
    """Return 'sqlite', 'postgresql', or 'mssql'."""
    sync_engine = getattr(engine, "sync_engine", engine)
    name = sync_engine.dialect.name
    if name in ("postgresql", "postgres"):
        return "postgresql"
    if name in ("mssql", "pyodbc"):
        return "mssql"
    return name


def is_unique_violation(error: IntegrityError, dialect: str) -> bool:
    """True when *error* was raised by a unique index or constraint.

    Other integrity failures (NOT NULL, foreign keys, CHECK) are not
    name collisions and must not be reported as one.
    """
    orig = error.orig
    if dialect == "postgresql":
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if code is not None:
            return str(code) == _PG_UNIQUE_VIOLATION
        return "duplicate key value violates unique constraint" in str(orig)
    if dialect == "mssql":
        message = str(orig)
        return any(code in message for code in _MSSQL_UNIQUE_CODES)
    # sqlite and unknown dialects
    return "UNIQUE constraint failed" in str(orig)
