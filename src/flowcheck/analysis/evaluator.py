"""Workflow evaluation: one diagnostic per workflow.

Combines the job graph validator and the runner requirement matcher into a
single pass over a parsed workflow, then applies that pass to every entry of
a listing request.

Diagnostic priority (first match wins):
    1. PARSE_ERROR        - the file could not be parsed
    2. ALL_JOBS_EMPTY     - no job has a body
    3. NO_RUNNABLE_JOB    - every job waits on another job
    4. UNMET_REQUIREMENT  - the first label (in job order) no online runner offers

A deadlocked workflow can never run whatever runners are online, so the
structural diagnostics hide label mismatches.
"""

import hashlib
from collections.abc import Collection, Iterable

import structlog

from flowcheck.analysis.dispatch import extract_dispatch
from flowcheck.analysis.graph import validate_jobs
from flowcheck.analysis.runners import match_requirements
from flowcheck.loader.messages import MessageCatalog
from flowcheck.loader.yaml_loader import MAX_WORKFLOW_SIZE_BYTES, LoadError, load_workflow
from flowcheck.types import (
    AgentLabelSet,
    WorkflowDiagnostic,
    WorkflowDocument,
    WorkflowEntry,
    WorkflowListing,
    WorkflowStatus,
)

logger = structlog.get_logger(__name__)


def evaluate(document: WorkflowDocument, available: AgentLabelSet) -> WorkflowDiagnostic | None:
    """Compute the diagnostic of a parsed workflow.

    Every job is visited so the structural check always sees the full job
    set; only the first unmet requirement is kept.

    Args:
        document: Parsed workflow
        available: Labels offered by online runners

    Returns:
        The highest priority diagnostic, or None if the workflow looks runnable
    """
    unmet: WorkflowDiagnostic | None = None
    for job in document.jobs.values():
        if job is None or unmet is not None:
            continue
        unmet = match_requirements(job, available)

    structural = validate_jobs(document.jobs)
    if structural is not None:
        return structural
    return unmet


def fingerprint(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:16]


def evaluate_entry(
    entry: WorkflowEntry,
    available: AgentLabelSet,
    max_size: int = MAX_WORKFLOW_SIZE_BYTES,
) -> tuple[WorkflowDocument | None, WorkflowDiagnostic | None]:
    """Parse and evaluate one workflow entry.

    Returns:
        (document, diagnostic); document is None when parsing failed
    """
    try:
        document = load_workflow(entry.content, max_size=max_size)
    except LoadError as e:
        logger.info("workflow_invalid", workflow=entry.name, error=str(e))
        return None, WorkflowDiagnostic.parse_error(str(e))
    return document, evaluate(document, available)


def evaluate_listing(
    entries: Iterable[WorkflowEntry],
    available: AgentLabelSet,
    selected: str | None = None,
    disabled: Collection[str] = (),
    catalog: MessageCatalog | None = None,
    max_size: int = MAX_WORKFLOW_SIZE_BYTES,
) -> WorkflowListing:
    """Evaluate every workflow of a listing request.

    Args:
        entries: Workflow files in listing order
        available: Label snapshot taken before the pass starts
        selected: Workflow id whose dispatch schema should be extracted
        disabled: Workflow ids that are disabled (no dispatch form for them)
        catalog: Message catalog for err_msg rendering (defaults if None)
        max_size: Maximum accepted workflow size in bytes

    Returns:
        WorkflowListing with one status per entry
    """
    catalog = catalog or MessageCatalog()
    listing = WorkflowListing(selected=selected, selected_disabled=selected in disabled)

    for entry in entries:
        document, diagnostic = evaluate_entry(entry, available, max_size=max_size)
        listing.workflows.append(
            WorkflowStatus(
                name=entry.name,
                is_global=entry.is_global,
                diagnostic=diagnostic,
                err_msg=catalog.render_diagnostic(diagnostic),
                fingerprint=fingerprint(entry.content),
            )
        )
        if (
            document is not None
            and entry.name == selected
            and not listing.selected_disabled
            and listing.dispatch is None
        ):
            listing.dispatch = extract_dispatch(document.trigger)

    logger.debug(
        "workflow_listing_evaluated",
        workflows=len(listing.workflows),
        with_diagnostics=sum(1 for s in listing.workflows if s.diagnostic is not None),
        selected=selected,
        dispatch=listing.dispatch is not None,
    )
    return listing
