"""
Unit tests for IntegrityError classification and mapping.

Driver exceptions are faked with small classes so Postgres behaviour can be
checked without a Postgres server.
"""
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from usercrud.exceptions.base import DuplicateResource, RepositoryError
from usercrud.exceptions.integrity_classifier import IntegrityKind, classify_integrity_error
from usercrud.exceptions.mapper import (
    db_error_handler,
    extract_columns_from_integrity,
    map_integrity_error,
    snapshot_values,
)
from usercrud.models.user import User
from usercrud.repositories.base_repository import BaseRepository


class FakePgError(Exception):
    """Looks like a psycopg 3 error: sqlstate + diag.constraint_name."""

    def __init__(self, message: str, sqlstate: str, constraint_name: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.diag = SimpleNamespace(constraint_name=constraint_name)


def integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO users ...", {}, orig)


PG_UNIQUE_MESSAGE = (
    'duplicate key value violates unique constraint "ix_users_username"\n'
    "DETAIL:  Key (username)=(alice) already exists."
)


class TestClassifyIntegrityError:
    def test_postgres_unique_uses_sqlstate_and_constraint(self):
        exc = integrity_error(FakePgError(PG_UNIQUE_MESSAGE, "23505", "ix_users_username"))
        assert classify_integrity_error(exc) == (IntegrityKind.UNIQUE, "ix_users_username")

    def test_postgres_not_null(self):
        exc = integrity_error(FakePgError('null value in column "email" violates not-null constraint', "23502"))
        kind, _ = classify_integrity_error(exc)
        assert kind is IntegrityKind.NOT_NULL

    def test_postgres_unknown_code(self):
        exc = integrity_error(FakePgError("exclusion violation", "23P01"))
        kind, _ = classify_integrity_error(exc)
        assert kind is IntegrityKind.UNKNOWN

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("UNIQUE constraint failed: users.email", IntegrityKind.UNIQUE),
            ("NOT NULL constraint failed: users.username", IntegrityKind.NOT_NULL),
            ("FOREIGN KEY constraint failed", IntegrityKind.FOREIGN_KEY),
            ("CHECK constraint failed: positive_age", IntegrityKind.CHECK),
            ("something odd happened", IntegrityKind.UNKNOWN),
        ],
    )
    def test_message_based_classification(self, message, expected):
        kind, constraint = classify_integrity_error(integrity_error(Exception(message)))
        assert kind is expected
        assert constraint is None


class TestExtractColumns:
    def test_postgres_detail_line(self):
        exc = integrity_error(FakePgError(PG_UNIQUE_MESSAGE, "23505"))
        assert extract_columns_from_integrity(exc) == ["username"]

    def test_sqlite_message(self):
        exc = integrity_error(Exception("UNIQUE constraint failed: users.email"))
        assert extract_columns_from_integrity(exc) == ["email"]

    def test_unparseable_message(self):
        assert extract_columns_from_integrity(integrity_error(Exception("boom"))) is None


class TestMapIntegrityError:
    def test_unique_violation_becomes_duplicate_resource_with_entity_value(self):
        entity = User(username="alice", email="alice@example.com", password="password123")
        exc = integrity_error(FakePgError(PG_UNIQUE_MESSAGE, "23505", "ix_users_username"))

        mapped = map_integrity_error(exc, "User", entity)

        assert isinstance(mapped, DuplicateResource)
        assert mapped.field == "username"
        assert mapped.value == "alice"
        assert mapped.constraint == "ix_users_username"
        assert str(mapped) == "User already exists with username: 'alice'"

    def test_column_from_constraint_name_when_message_has_no_detail(self):
        """
        Behavior:
            - No DETAIL line, but the constraint follows the naming convention,
              so the column is recovered from "uq_users_email".
        """
        entity = User(username="bob", email="bob@example.com", password="password123")
        exc = integrity_error(FakePgError("duplicate key value violates unique constraint", "23505", "uq_users_email"))

        mapped = map_integrity_error(exc, "User", entity)

        assert isinstance(mapped, DuplicateResource)
        assert mapped.field == "email"
        assert mapped.value == "bob@example.com"

    def test_non_unique_violation_becomes_repository_error_without_db_text(self):
        exc = integrity_error(Exception("NOT NULL constraint failed: users.username"))

        mapped = map_integrity_error(exc, "User")

        assert isinstance(mapped, RepositoryError)
        assert "NOT NULL" not in str(mapped)


class FakeSession:
    def __init__(self, fail_rollback: bool = False):
        self.rollbacks = 0
        self.fail_rollback = fail_rollback

    async def rollback(self):
        self.rollbacks += 1
        if self.fail_rollback:
            raise RuntimeError("connection gone")


@pytest.mark.asyncio
class TestDbErrorHandler:
    async def test_no_error_no_rollback(self):
        session = FakeSession()
        async with db_error_handler(session, "User"):
            pass
        assert session.rollbacks == 0

    async def test_integrity_error_is_mapped_after_rollback(self):
        session = FakeSession()
        entity = User(username="alice", email="alice@example.com", password="password123")

        with pytest.raises(DuplicateResource) as exc_info:
            async with db_error_handler(session, "User", entity):
                raise integrity_error(Exception("UNIQUE constraint failed: users.username"))

        assert session.rollbacks == 1
        assert exc_info.value.value == "alice"
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    async def test_unexpected_error_is_wrapped(self):
        session = FakeSession()

        with pytest.raises(RepositoryError) as exc_info:
            async with db_error_handler(session, "User"):
                raise OSError("network down")

        assert session.rollbacks == 1
        assert isinstance(exc_info.value.__cause__, OSError)
        assert "network down" not in str(exc_info.value)

    async def test_failed_rollback_keeps_original_error(self):
        session = FakeSession(fail_rollback=True)

        with pytest.raises(DuplicateResource):
            async with db_error_handler(session, "User", User(username="x1", email="x@example.com", password="p" * 8)):
                raise integrity_error(Exception("UNIQUE constraint failed: users.username"))


class TestConflictValue:
    def test_value_taken_from_snapshot(self):
        exc = integrity_error(Exception("UNIQUE constraint failed: users.username"))

        mapped = map_integrity_error(exc, "User", values={"username": "taken"})

        assert isinstance(mapped, DuplicateResource)
        assert mapped.value == "taken"
        assert str(mapped) == "User already exists with username: 'taken'"

    def test_postgres_detail_supplies_value_when_nothing_else_does(self):
        exc = integrity_error(FakePgError(PG_UNIQUE_MESSAGE, "23505", "ix_users_username"))

        mapped = map_integrity_error(exc, "User")

        assert mapped.value == "alice"

    def test_unknown_value_is_left_out_of_the_message(self):
        exc = integrity_error(Exception("UNIQUE constraint failed: users.email"))

        mapped = map_integrity_error(exc, "User")

        assert mapped.field == "email"
        assert mapped.value is None
        assert str(mapped) == "User already exists with email"

    def test_snapshot_reads_loaded_columns_only(self):
        entity = User(username="alice", email="alice@example.com", password="password123")

        values = snapshot_values(entity)

        assert values["username"] == "alice"
        assert values["email"] == "alice@example.com"
        assert "_sa_instance_state" not in values

    def test_snapshot_of_plain_objects_is_empty(self):
        assert snapshot_values(None) == {}
        assert snapshot_values(object()) == {}


class FakeCommitSession(FakeSession):
    """Session whose commit fails the way a deferred unique constraint does."""

    async def commit(self):
        raise integrity_error(Exception("UNIQUE constraint failed: users.email"))


@pytest.mark.asyncio
class TestCommitTimeConflict:
    async def test_commit_names_the_value_of_the_written_entity(self):
        session = FakeCommitSession()
        repo = BaseRepository(User, session)
        entity = User(username="carol", email="carol@example.com", password="password123")

        with pytest.raises(DuplicateResource) as exc_info:
            await repo.commit(entity)

        assert session.rollbacks == 1
        assert str(exc_info.value) == "User already exists with email: 'carol@example.com'"

    async def test_commit_without_entity_omits_the_value(self):
        repo = BaseRepository(User, FakeCommitSession())

        with pytest.raises(DuplicateResource) as exc_info:
            await repo.commit()

        assert str(exc_info.value) == "User already exists with email"
