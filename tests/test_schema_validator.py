"""Tests for request body schema validation."""

from app.models.endpoint import RequestSchema
from app.services.schema_validator import matches_type, validate_body

TICKET_SCHEMA = RequestSchema.model_validate(
    {
        "required": ["title", "client_id"],
        "properties": {
            "title": {"type": "string", "minLength": 3, "maxLength": 10},
            "hours": {"type": "number"},
            "metadata": {"type": "object"},
        },
    }
)


def test_empty_schema_accepts_anything():
    result = validate_body(None, RequestSchema())

    assert result.valid is True
    assert result.errors is None


def test_valid_body():
    result = validate_body({"title": "Printer", "client_id": "c-1", "hours": 2.5}, TICKET_SCHEMA)

    assert result.valid is True
    assert result.errors is None


def test_reports_all_violations():
    result = validate_body({"title": "ab", "hours": "two"}, TICKET_SCHEMA)

    assert result.valid is False
    assert result.errors == [
        "Missing required field: client_id",
        "Field title must be at least 3 characters",
        "Field hours must be of type number",
    ]


def test_max_length():
    result = validate_body({"title": "x" * 11, "client_id": "c-1"}, TICKET_SCHEMA)

    assert result.errors == ["Field title must be at most 10 characters"]


def test_wrong_type_skips_length_checks():
    result = validate_body({"title": 42, "client_id": "c-1"}, TICKET_SCHEMA)

    assert result.errors == ["Field title must be of type string"]


def test_non_object_body_is_treated_as_empty():
    for body in (None, [], "text", 3):
        result = validate_body(body, TICKET_SCHEMA)
        assert result.errors == [
            "Missing required field: title",
            "Missing required field: client_id",
        ]


def test_object_type_matches_null_and_arrays():
    assert matches_type({}, "object") is True
    assert matches_type([], "object") is True
    assert matches_type(None, "object") is True
    assert matches_type("x", "object") is False


def test_booleans_are_not_numbers():
    assert matches_type(True, "number") is False
    assert matches_type(1, "number") is True
    assert matches_type(1.5, "integer") is False
    assert matches_type(True, "boolean") is True


def test_unknown_type_never_matches():
    schema = RequestSchema.model_validate({"properties": {"due": {"type": "date"}}})

    result = validate_body({"due": "2024-01-01"}, schema)

    assert result.errors == ["Field due must be of type date"]
