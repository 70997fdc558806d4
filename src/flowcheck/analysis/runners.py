"""Matching of job runner requirements against online runner labels."""

from collections.abc import Iterable

import structlog

from flowcheck.types import AgentLabelSet, Job, Runner, WorkflowDiagnostic

logger = structlog.get_logger(__name__)

# Labels containing an expression are resolved at run time and cannot be
# checked here (e.g. `${{ matrix.os }}`)
EXPRESSION_MARKER = "${{"


def is_expression(label: str) -> bool:
    return EXPRESSION_MARKER in label


def snapshot_labels(runners: Iterable[Runner]) -> AgentLabelSet:
    """Collect the labels of all online runners into an immutable set."""
    labels: set[str] = set()
    online = 0
    for runner in runners:
        if not runner.online:
            continue
        online += 1
        labels.update(runner.labels)
    logger.debug("runner_labels_snapshot", online_runners=online, labels=sorted(labels))
    return AgentLabelSet(labels)


def match_requirements(job: Job, available: AgentLabelSet) -> WorkflowDiagnostic | None:
    """Return UNMET_REQUIREMENT for the first label no online runner offers.

    Expression labels are skipped. Returns None when every literal label
    is available.
    """
    for label in job.runs_on:
        if is_expression(label):
            continue
        if label not in available:
            return WorkflowDiagnostic.unmet_requirement(label)
    return None
