"""File-backed runner registry.

A registry file lists the runners known to the project and whether they
are currently connected:

    runners:
      - name: builder-1
        online: true
        labels: [ubuntu-latest, linux, x64]
      - name: mac-mini
        online: false
        labels: [macos]

The file is validated against an embedded JSON Schema before it is turned
into Runner models.
"""

import json
from pathlib import Path

import structlog
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from flowcheck.schema.validator import validate_registry
from flowcheck.types import Runner

logger = structlog.get_logger(__name__)


class RegistryError(Exception):
    """Raised when a runner registry file cannot be read or parsed."""

    pass


def _parse(path: Path, content: str) -> object:
    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            return YAML(typ="safe", pure=True).load(content)
        if suffix == ".json":
            return json.loads(content)
    except (YAMLError, json.JSONDecodeError) as e:
        raise RegistryError(f"Failed to parse {path}: {e}") from e
    raise RegistryError(f"Unsupported file extension: {suffix}. Use .yaml, .yml, or .json")


def load_runner_registry(path: str | Path) -> list[Runner]:
    """Load runners from a registry file.

    Raises:
        RegistryError: If the file is missing, unreadable or malformed
        SchemaValidationError: If the document does not match the registry schema
    """
    path = Path(path)
    if not path.exists():
        raise RegistryError(f"Runner registry not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RegistryError(f"Failed to read {path}: {e}") from e

    data = _parse(path, content)
    validate_registry(data)

    try:
        runners = [Runner.model_validate(item) for item in data["runners"]]
    except PydanticValidationError as e:
        raise RegistryError(f"Invalid runner entry in {path}: {e}") from e

    logger.debug(
        "runner_registry_loaded",
        path=str(path),
        runners=len(runners),
        online=sum(1 for r in runners if r.online),
    )
    return runners
