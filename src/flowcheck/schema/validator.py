"""Schema validation for runner registry files.

Validates registry documents against the embedded JSON Schema Draft 2020-12
schema. Errors are reported with JSONPointer paths so a broken entry can be
located in a long registry file.

Schema Location:
    runners.schema.json (next to this module)
"""

import json
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator


class SchemaValidationError(Exception):
    """Raised when a registry document fails JSON Schema validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]]):
        """Initialize with message and structured error details.

        Args:
            message: Human-readable error summary
            errors: List of error details with JSONPointer paths
        """
        super().__init__(message)
        self.errors = errors


def _load_embedded_schema() -> dict[str, Any]:
    schema_path = Path(__file__).parent / "runners.schema.json"
    with schema_path.open("r", encoding="utf-8") as f:
        return json.load(f)


# Cache the schema and validator at module load time
_SCHEMA = _load_embedded_schema()
_VALIDATOR = Draft202012Validator(_SCHEMA)


# Errors listed in the exception message; the rest stay in `errors`
MAX_SUMMARY_ERRORS = 5


def _runner_name(data: Any, path: list[Any]) -> str | None:
    """Name of the runner entry an error path points into, if it has one."""
    if len(path) < 2 or path[0] != "runners" or not isinstance(path[1], int):
        return None
    entry = data["runners"][path[1]]
    name = entry.get("name") if isinstance(entry, dict) else None
    return name if isinstance(name, str) and name else None


def _location(error: dict[str, Any]) -> str:
    if error["runner"]:
        return f"{error['pointer']} (runner {error['runner']!r})"
    return error["pointer"]


def validate_registry(data: Any) -> None:
    """Validate a runner registry document against the JSON Schema.

    Errors inside a runner entry carry the entry's `name`, so the summary
    reads `/runners/3/labels/0 (runner 'builder-2'): ...`.

    Args:
        data: Parsed YAML/JSON registry document

    Raises:
        SchemaValidationError: If validation fails. Each error detail has
                               `pointer`, `runner`, `message`, `validator`
                               and `path` keys
    """
    errors = []
    for error in _VALIDATOR.iter_errors(data):
        path = list(error.absolute_path)
        errors.append(
            {
                "pointer": "".join(f"/{p}" for p in path) or "(root)",
                "runner": _runner_name(data, path),
                "message": error.message,
                "validator": error.validator,
                "path": path,
            }
        )
    if not errors:
        return

    lines = [f"{len(errors)} problem(s) in runner registry:"]
    lines.extend(f"  - {_location(e)}: {e['message']}" for e in errors[:MAX_SUMMARY_ERRORS])
    hidden = len(errors) - MAX_SUMMARY_ERRORS
    if hidden > 0:
        lines.append(f"  ({hidden} more not shown)")

    raise SchemaValidationError("\n".join(lines), errors)


def get_schema() -> dict[str, Any]:
    """Return a copy of the cached registry schema."""
    return _SCHEMA.copy()
