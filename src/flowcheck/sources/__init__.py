"""Collaborators that feed the analysis: workflow files and runner labels."""

from flowcheck.sources.filesystem import SourceError, list_workflow_entries
from flowcheck.sources.registry import RegistryError, load_runner_registry

__all__ = [
    "RegistryError",
    "SourceError",
    "list_workflow_entries",
    "load_runner_registry",
]
