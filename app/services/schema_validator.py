"""JSON-schema-lite request body validation.

Unlike credential checks, body validation reports every violation at once so
that clients can correct a whole form in one round trip.
"""

from typing import Any, List

from app.models.endpoint import RequestSchema
from app.models.request import BodyValidationResult


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


TYPE_CHECKS = {
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "integer": lambda value: isinstance(value, int) and not isinstance(value, bool),
    "boolean": lambda value: isinstance(value, bool),
    # JSON null and arrays report as "object", matching JavaScript typeof
    "object": lambda value: value is None or isinstance(value, (dict, list)),
    "array": lambda value: isinstance(value, list),
}


def matches_type(value: Any, type_name: str) -> bool:
    """Return whether ``value`` has JSON type ``type_name``.

    Unknown type names never match.
    """
    check = TYPE_CHECKS.get(type_name)
    return bool(check and check(value))


def validate_body(body: Any, schema: RequestSchema) -> BodyValidationResult:
    """Validate a decoded request body against ``schema``.

    Args:
        body: Decoded JSON body; anything other than an object counts as ``{}``
        schema: Endpoint request schema

    Returns:
        BodyValidationResult with all violations
    """
    if schema.is_empty():
        return BodyValidationResult(valid=True)

    if not isinstance(body, dict):
        body = {}

    errors: List[str] = []

    for field in schema.required:
        if field not in body:
            errors.append(f"Missing required field: {field}")

    for field, rules in schema.properties.items():
        if field not in body:
            continue
        value = body[field]

        if rules.type and not matches_type(value, rules.type):
            errors.append(f"Field {field} must be of type {rules.type}")

        if isinstance(value, str):
            if rules.minLength and len(value) < rules.minLength:
                errors.append(
                    f"Field {field} must be at least {rules.minLength} characters"
                )
            if rules.maxLength and len(value) > rules.maxLength:
                errors.append(
                    f"Field {field} must be at most {rules.maxLength} characters"
                )

    return BodyValidationResult(valid=not errors, errors=errors or None)
