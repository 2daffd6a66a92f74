"""
Unit tests for translate_error: one case per row of the mapping table.
"""
import logging

import pytest
from fastapi.exceptions import RequestValidationError

from usercrud.api.v1.error_handlers import GENERIC_ERROR_MESSAGE, error_response, translate_error
from usercrud.exceptions.base import (
    ConstraintViolation,
    DuplicateResource,
    InvalidArgument,
    RepositoryError,
    ResourceNotFound,
    Unclassified,
    ValidationFailed,
)

PATH = "/api/users"


def issues(payload) -> list[tuple[str, str]]:
    return [(i.field, i.message) for i in payload.validation_errors]


class TestTranslateError:
    def test_not_found(self):
        status, payload = translate_error(ResourceNotFound("User", "42"), PATH)

        assert status == 404
        assert payload.status == 404
        assert payload.error == "Not Found"
        assert payload.message == "User not found with id: '42'"
        assert payload.path == PATH
        assert payload.validation_errors == []

    def test_duplicate(self):
        status, payload = translate_error(DuplicateResource("User", "email", "a@example.com"), PATH)

        assert status == 409
        assert payload.error == "Conflict"
        assert payload.message == "User already exists with email: 'a@example.com'"
        assert payload.validation_errors == []

    def test_validation_failed_keeps_message_and_order(self):
        exc = ValidationFailed("Bad input", [("username", "too short"), ("email", "invalid")])

        status, payload = translate_error(exc, PATH)

        assert status == 400
        assert payload.error == "Bad Request"
        assert payload.message == "Bad input"
        assert issues(payload) == [("username", "too short"), ("email", "invalid")]

    def test_validation_failed_built_up_field_by_field(self):
        exc = ValidationFailed()
        exc.add_error("username", "already reserved")
        exc.add_error("email", "domain not allowed")

        status, payload = translate_error(exc, PATH)

        assert status == 400
        assert payload.message == "Validation failed"
        assert issues(payload) == [("username", "already reserved"), ("email", "domain not allowed")]

    def test_constraint_violation(self):
        status, payload = translate_error(ConstraintViolation({"password": "too short"}), PATH)

        assert status == 400
        assert payload.message == "Validation failed"
        assert issues(payload) == [("password", "too short")]

    def test_request_validation_error_strips_location_prefix(self):
        exc = RequestValidationError(
            [
                {"loc": ("body", "username"), "msg": "String should have at least 3 characters", "type": "string_too_short"},
                {"loc": ("path", "user_id"), "msg": "Input should be a valid UUID", "type": "uuid_parsing"},
                {"loc": ("body", "email"), "msg": "Value error, Email must be at most 100 characters", "type": "value_error"},
            ]
        )

        status, payload = translate_error(exc, PATH)

        assert status == 400
        assert payload.message == "Validation failed"
        assert issues(payload) == [
            ("username", "String should have at least 3 characters"),
            ("user_id", "Input should be a valid UUID"),
            ("email", "Email must be at most 100 characters"),
        ]

    def test_request_validation_error_on_whole_body(self):
        exc = RequestValidationError([{"loc": ("body",), "msg": "Field required", "type": "missing"}])

        _, payload = translate_error(exc, PATH)

        assert issues(payload) == [("body", "Field required")]

    def test_invalid_argument(self):
        status, payload = translate_error(InvalidArgument("page must be positive"), PATH)
        assert status == 400
        assert payload.message == "page must be positive"

    def test_value_error(self):
        status, payload = translate_error(ValueError("bad value"), PATH)
        assert status == 400
        assert payload.message == "bad value"

    @pytest.mark.parametrize(
        "exc",
        [
            Unclassified("weird state"),
            RepositoryError("User database integrity error.", constraint="ck_users_x"),
            RuntimeError("connection refused to db-host:5432"),
        ],
    )
    def test_everything_else_is_a_generic_500(self, exc):
        status, payload = translate_error(exc, PATH)

        assert status == 500
        assert payload.error == "Internal Server Error"
        assert payload.message == GENERIC_ERROR_MESSAGE
        assert payload.validation_errors == []

    def test_only_500_logs_a_traceback(self, caplog):
        caplog.set_level(logging.INFO, logger="usercrud.api.v1.error_handlers")

        translate_error(DuplicateResource("User", "username", "alice"), PATH)
        translate_error(RuntimeError("boom"), PATH)

        records = [r for r in caplog.records if r.name == "usercrud.api.v1.error_handlers"]
        assert [r.levelno for r in records] == [logging.INFO, logging.ERROR]
        assert records[0].exc_info is None
        assert records[1].exc_info is not None


class TestErrorResponse:
    def test_renders_camel_case_json(self):
        response = error_response(ConstraintViolation([("username", "required")]), PATH)

        assert response.status_code == 400
        assert b'"validationErrors":[{"field":"username","message":"required"}]' in response.body
