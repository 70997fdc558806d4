"""Workflow source provider over a checked-out project tree.

Workflow files live in `.gitea/workflows` or `.github/workflows`; the first
directory that exists wins. Shared workflow directories (workflows required
by an organization and pulled in from another project) are appended after
the project's own files and marked global.
"""

from collections.abc import Iterable, Sequence
from pathlib import Path

import structlog

from flowcheck.types import WorkflowEntry

logger = structlog.get_logger(__name__)

WORKFLOW_SUFFIXES = {".yml", ".yaml"}
DEFAULT_WORKFLOW_DIRS = (".gitea/workflows", ".github/workflows")


class SourceError(Exception):
    """Raised when workflow files cannot be listed or read."""

    pass


def find_workflow_dir(
    root: Path, workflow_dirs: Sequence[str] = DEFAULT_WORKFLOW_DIRS
) -> Path | None:
    """Return the first existing workflow directory under root, if any."""
    for relative in workflow_dirs:
        candidate = root / relative
        if candidate.is_dir():
            return candidate
    return None


def _read_entries(directory: Path, is_global: bool) -> list[WorkflowEntry]:
    try:
        paths = sorted(
            p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in WORKFLOW_SUFFIXES
        )
    except OSError as e:
        raise SourceError(f"Failed to list {directory}: {e}") from e

    entries = []
    for path in paths:
        try:
            content = path.read_bytes()
        except OSError as e:
            raise SourceError(f"Failed to read {path}: {e}") from e
        entries.append(WorkflowEntry(name=path.name, content=content, is_global=is_global))
    return entries


def list_workflow_entries(
    root: str | Path,
    workflow_dirs: Sequence[str] = DEFAULT_WORKFLOW_DIRS,
    global_dirs: Iterable[str | Path] = (),
) -> list[WorkflowEntry]:
    """List the workflow files of a project plus shared workflows.

    Args:
        root: Project root directory
        workflow_dirs: Candidate workflow directories relative to root
        global_dirs: Directories with shared workflows; an entry whose name
                     collides with a project workflow is skipped

    Returns:
        Project entries sorted by name, then global entries

    Raises:
        SourceError: If root or a global directory is missing or unreadable
    """
    root = Path(root)
    if not root.is_dir():
        raise SourceError(f"Project root not found: {root}")

    entries: list[WorkflowEntry] = []
    workflow_dir = find_workflow_dir(root, workflow_dirs)
    if workflow_dir is None:
        logger.info("workflow_dir_missing", root=str(root), candidates=list(workflow_dirs))
    else:
        entries.extend(_read_entries(workflow_dir, is_global=False))

    names = {entry.name for entry in entries}
    for global_dir in global_dirs:
        global_dir = Path(global_dir)
        if not global_dir.is_dir():
            raise SourceError(f"Shared workflow directory not found: {global_dir}")
        for entry in _read_entries(global_dir, is_global=True):
            if entry.name in names:
                logger.info("global_workflow_conflict", workflow=entry.name, source=str(global_dir))
                continue
            names.add(entry.name)
            entries.append(entry)

    logger.debug("workflow_entries_listed", root=str(root), count=len(entries))
    return entries
