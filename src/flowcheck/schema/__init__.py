"""Schema validation module for runner registry files."""

from flowcheck.schema.validator import (
    SchemaValidationError,
    get_schema,
    validate_registry,
)

__all__ = ["SchemaValidationError", "get_schema", "validate_registry"]
