import re
import logging
from contextlib import asynccontextmanager
from typing import Any, Mapping

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import IntegrityError, NoInspectionAvailable
from sqlalchemy.ext.asyncio import AsyncSession

from .integrity_classifier import classify_integrity_error, IntegrityKind
from .base import DuplicateResource, RepositoryError

logger = logging.getLogger(__name__)

# -----------------------
# Column extraction helpers
# -----------------------

def _extract_columns_postgres(msg: str) -> list[str] | None:
    """
    Postgres reports the offending key in the DETAIL line:
      'DETAIL:  Key (username)=(alice) already exists.'
      'null value in column "email" violates not-null constraint'
    """
    m = re.search(r'null value in column "(?P<col>[^"]+)"', msg, flags=re.IGNORECASE)
    if m:
        return [m.group("col")]

    m = re.search(r'key \((?P<cols>[^)]+)\)=', msg, flags=re.IGNORECASE)
    if m:
        return [c.strip().strip('"') for c in m.group("cols").split(",")]

    return None


def _extract_columns_sqlite(msg: str) -> list[str] | None:
    # 'UNIQUE constraint failed: users.email' / 'NOT NULL constraint failed: users.email'
    m = re.search(r'(?:UNIQUE|NOT NULL) constraint failed: (?P<cols>[^\n]+)', msg, flags=re.IGNORECASE)
    if m:
        return [c.split('.')[-1].strip() for c in re.split(r',\s*', m.group("cols").strip())]
    return None


def _columns_from_constraint_name(constraint: str | None, table: str | None) -> list[str] | None:
    # Naming convention in usercrud.database.base: uq_<table>_<column> / ix_<table>_<column>
    if not constraint or not table:
        return None
    m = re.match(rf'^(?:uq|ix)_{re.escape(table)}_(?P<col>\w+)$', constraint)
    if m:
        return [m.group("col")]
    return None


def extract_columns_from_integrity(exc: IntegrityError) -> list[str] | None:
    """
    Best-effort extraction of column names from the driver message (Postgres, SQLite).
    """
    orig = exc.orig
    msg = str(orig) if orig is not None else str(exc)
    return _extract_columns_postgres(msg) or _extract_columns_sqlite(msg)


def extract_value_from_integrity(exc: IntegrityError) -> str | None:
    """
    The offending value of a single-column unique violation, when the driver reports it.
    Only Postgres does: 'Key (username)=(alice) already exists.'
    """
    msg = str(exc.orig) if exc.orig is not None else str(exc)
    m = re.search(r'key \((?P<cols>[^)]+)\)=\((?P<vals>.*)\) already exists', msg, flags=re.IGNORECASE)
    if m and "," not in m.group("cols"):
        return m.group("vals")
    return None


def snapshot_values(entity: Any) -> dict[str, Any]:
    """
    Column values of `entity` as currently held in memory.

    Reads the instance state directly, so it never triggers a load. Once a flush
    fails the session expires the entity, and attribute access would hit the
    database again; take the snapshot before the write.
    """
    if entity is None:
        return {}
    if isinstance(entity, Mapping):
        return dict(entity)
    try:
        state = sa_inspect(entity)
    except NoInspectionAvailable:
        return {}
    loaded = state.dict
    return {attr.key: loaded[attr.key] for attr in state.mapper.column_attrs if attr.key in loaded}


# -----------------------
# Mapper
# -----------------------

def map_integrity_error(
    exc: IntegrityError,
    resource_type: str,
    entity: Any = None,
    values: Mapping[str, Any] | None = None,
) -> Exception:
    """
    Translate an IntegrityError into the exception callers should see.

    Unique violations become DuplicateResource(resource_type, field, value). The value
    comes from `values` (a snapshot taken before the write), else from the entity's
    in-memory state, else from the driver message; when none has it the value is left
    out. Every other integrity failure is an infrastructure RepositoryError carrying
    no raw DB text.
    """
    kind, constraint_name = classify_integrity_error(exc)

    if kind is IntegrityKind.UNIQUE:
        table = getattr(getattr(entity, "__table__", None), "name", None)
        columns = (
            extract_columns_from_integrity(exc)
            or _columns_from_constraint_name(constraint_name, table)
        )
        field = columns[0] if columns else (constraint_name or "unique key")
        known = values if values is not None else snapshot_values(entity)
        value = known.get(field) if columns else None
        if value is None:
            value = extract_value_from_integrity(exc)
        # Duplicates are an expected client outcome (409); INFO, no stack trace.
        logger.info(
            "mapper.duplicate_detected",
            extra={"resource": resource_type, "field": field, "constraint": constraint_name},
        )
        return DuplicateResource(resource_type, field, value, constraint=constraint_name)

    raw = str(exc.orig) if exc.orig is not None else str(exc)
    logger.warning(
        "mapper.integrity_error",
        extra={"resource": resource_type, "kind": kind.value, "constraint": constraint_name},
    )
    # Raw DB message only at DEBUG; it may contain row values.
    logger.debug("mapper.integrity_raw", extra={"resource": resource_type, "raw": raw})
    return RepositoryError(f"{resource_type} database integrity error.", constraint=constraint_name)


# -----------------------
# Async context manager to DRY error handling in repositories
# -----------------------
@asynccontextmanager
async def db_error_handler(db: AsyncSession, resource_type: str, entity: Any = None):
    """
    Usage:
        async with db_error_handler(self.db, "User", entity):
            ... flush / commit ...

    Rolls the session back on any failure, then raises DuplicateResource for unique
    violations and RepositoryError for everything else. Domain errors raised inside
    the block pass through untouched.

    `entity` is snapshotted on entry: after a failed flush its attributes are expired
    and can no longer be read without a round trip on a session that needs rollback.
    """
    values = snapshot_values(entity)
    try:
        yield
    except IntegrityError as exc:
        mapped = map_integrity_error(exc, resource_type, entity, values)
        await _safe_rollback(db, resource_type)
        raise mapped from exc
    except (DuplicateResource, RepositoryError):
        await _safe_rollback(db, resource_type)
        raise
    except Exception as exc:
        await _safe_rollback(db, resource_type)
        logger.exception("Unexpected DB error for %s", resource_type, extra={"resource": resource_type})
        raise RepositoryError(f"Failed to operate on {resource_type}") from exc


async def _safe_rollback(db: AsyncSession, resource_type: str) -> None:
    try:
        await db.rollback()
    except Exception:
        # Rollback failing is unusual; keep the original error as the one raised.
        logger.exception("Failed to rollback session", extra={"resource": resource_type})
