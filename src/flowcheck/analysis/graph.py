"""Structural schedulability check for a workflow's job set.

A workflow can only start if at least one job has no `needs`; otherwise
every job waits on a predecessor and nothing ever runs. A job set whose
entries are all empty (or that has no entries at all) gets its own, more
specific diagnostic.

The check only looks for a root. A cycle among non-root jobs next to a valid
root is not reported.
"""

from collections.abc import Mapping

from flowcheck.types import Job, WorkflowDiagnostic


def is_runnable_root(job: Job | None) -> bool:
    """True for a job with a body and no dependencies."""
    return job is not None and not job.needs


def validate_jobs(jobs: Mapping[str, Job | None]) -> WorkflowDiagnostic | None:
    """Validate that a job set can be scheduled.

    Args:
        jobs: Job id -> job body (None for an empty entry), in declaration order

    Returns:
        ALL_JOBS_EMPTY if every entry is empty (including no entries),
        NO_RUNNABLE_JOB if no job is free of dependencies, None otherwise
    """
    empty_count = sum(1 for job in jobs.values() if job is None)
    if empty_count == len(jobs):
        return WorkflowDiagnostic.all_jobs_empty()

    if not any(is_runnable_root(job) for job in jobs.values()):
        return WorkflowDiagnostic.no_runnable_job()

    return None
