"""Message catalog for rendering workflow diagnostics.

Each diagnostic kind maps to one message template. Templates are Jinja2
strings rendered in a sandbox with StrictUndefined, so a template that
references an unknown variable fails loudly instead of rendering blanks.

Template variables:
    - detail: parser error text (invalid_workflow_helper)
    - label: the runner label nobody offers (no_matching_online_runner_helper)

An override catalog is a YAML mapping of message key -> template; keys it
does not mention keep the default text.
"""

from pathlib import Path
from typing import Any

import structlog
from jinja2 import StrictUndefined, TemplateSyntaxError, UndefinedError
from jinja2.sandbox import SandboxedEnvironment
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from flowcheck.types import DiagnosticKind, WorkflowDiagnostic

logger = structlog.get_logger(__name__)


class MessageError(Exception):
    """Raised when a message catalog cannot be loaded or rendered."""

    pass


INVALID_WORKFLOW = "runs.invalid_workflow_helper"
NO_MATCHING_RUNNER = "runs.no_matching_online_runner_helper"
NO_JOB_WITHOUT_NEEDS = "runs.no_job_without_needs"
NO_JOB = "runs.no_job"

DEFAULT_MESSAGES: dict[str, str] = {
    INVALID_WORKFLOW: (
        "Workflow config file is invalid. Please check your config file: {{ detail }}"
    ),
    NO_MATCHING_RUNNER: "No matching online runner with label: {{ label }}",
    NO_JOB_WITHOUT_NEEDS: "The workflow must contain at least one job without dependencies.",
    NO_JOB: "The workflow must contain at least one job.",
}

_KEYS_BY_KIND = {
    DiagnosticKind.PARSE_ERROR: INVALID_WORKFLOW,
    DiagnosticKind.UNMET_REQUIREMENT: NO_MATCHING_RUNNER,
    DiagnosticKind.NO_RUNNABLE_JOB: NO_JOB_WITHOUT_NEEDS,
    DiagnosticKind.ALL_JOBS_EMPTY: NO_JOB,
}


class MessageCatalog:
    """Renders diagnostics into user-facing messages."""

    def __init__(self, messages: dict[str, str] | None = None) -> None:
        self.messages = dict(DEFAULT_MESSAGES)
        if messages:
            self.messages.update(messages)
        self._env = SandboxedEnvironment(undefined=StrictUndefined, autoescape=False)

    def render(self, key: str, **context: Any) -> str:
        """Render the template stored under `key`.

        Raises:
            MessageError: If the key is unknown or the template is broken
        """
        try:
            source = self.messages[key]
        except KeyError:
            raise MessageError(f"Unknown message key: {key}") from None

        try:
            return self._env.from_string(source).render(**context)
        except TemplateSyntaxError as e:
            raise MessageError(
                f"Template syntax error in {key!r} at line {e.lineno}: {e.message}"
            ) from e
        except UndefinedError as e:
            raise MessageError(f"Undefined variable in {key!r}: {e}") from e

    def render_diagnostic(self, diagnostic: WorkflowDiagnostic | None) -> str:
        """Render a diagnostic; no diagnostic renders as an empty string."""
        if diagnostic is None:
            return ""
        key = _KEYS_BY_KIND[diagnostic.kind]
        if diagnostic.kind == DiagnosticKind.PARSE_ERROR:
            return self.render(key, detail=diagnostic.detail or "")
        if diagnostic.kind == DiagnosticKind.UNMET_REQUIREMENT:
            return self.render(key, label=diagnostic.detail or "")
        return self.render(key)


def load_catalog(path: str | Path | None = None) -> MessageCatalog:
    """Load a message catalog, applying overrides from a YAML file if given.

    Raises:
        MessageError: If the override file is missing or not a string mapping
    """
    if path is None:
        return MessageCatalog()

    path = Path(path)
    try:
        data = YAML(typ="safe", pure=True).load(path.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as e:
        raise MessageError(f"Failed to load message catalog {path}: {e}") from e

    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise MessageError(f"Message catalog {path} must map message keys to strings")

    unknown = sorted(set(data) - set(DEFAULT_MESSAGES))
    if unknown:
        logger.warning("message_catalog_unknown_keys", path=str(path), keys=unknown)

    logger.debug("message_catalog_loaded", path=str(path), overrides=len(data))
    return MessageCatalog(data)
