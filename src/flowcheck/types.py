"""Type definitions for flowcheck.

Parsed workflow documents keep raw YAML nodes around (the trigger section and
the unresolved job fields), so they are plain frozen dataclasses. Everything
that leaves the engine (dispatch schemas, diagnostics, listing results) is a
Pydantic v2 model so it can be serialized for reports and the CLI.

Key Models:
    WorkflowDocument: One parsed workflow file (jobs + trigger spec)
    Job: A job's dependency edges and runner requirement labels
    TriggerSpec: The `on:` section, tagged by YAML node kind
    DispatchSchema: Inputs accepted by a manual (workflow_dispatch) run
    WorkflowDiagnostic: The single prioritized problem found in a workflow
    AgentLabelSet: Immutable snapshot of labels advertised by online runners
    WorkflowListing: Result of one listing pass over a set of workflow files
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from ruamel.yaml.nodes import Node


class TriggerKind(str, Enum):
    """Shape of the `on:` section as authored."""

    SCALAR = "scalar"  # on: push
    SEQUENCE = "sequence"  # on: [push, workflow_dispatch]
    MAPPING = "mapping"  # on: {workflow_dispatch: {inputs: ...}}
    NONE = "none"  # absent, null, or an unrecognized shape


@dataclass(frozen=True)
class TriggerSpec:
    """Raw trigger node together with its kind, resolved once at parse time."""

    kind: TriggerKind
    node: Node | None = None


@dataclass(frozen=True)
class Job:
    """A job body.

    `needs` holds the ids of jobs that must finish first; `runs_on` holds the
    requirement labels in declaration order (literal labels or `${{ }}`
    expressions).
    """

    id: str
    needs: frozenset[str] = frozenset()
    runs_on: tuple[str, ...] = ()
    name: str | None = None


@dataclass(frozen=True)
class WorkflowDocument:
    """A parsed workflow file.

    Job bodies may be None (an entry like `build:` with nothing under it).
    Insertion order of `jobs` is the declaration order.
    """

    jobs: dict[str, Job | None] = field(default_factory=dict)
    trigger: TriggerSpec = field(default_factory=lambda: TriggerSpec(TriggerKind.NONE))
    name: str | None = None


class AgentLabelSet:
    """Labels available on at least one online runner.

    Built once per request before evaluation starts and never mutated
    afterwards, so it can be shared by concurrent evaluations.
    """

    __slots__ = ("_labels",)

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._labels = frozenset(labels)

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._labels))

    def __len__(self) -> int:
        return len(self._labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AgentLabelSet):
            return NotImplemented
        return self._labels == other._labels

    def __hash__(self) -> int:
        return hash(self._labels)

    def __repr__(self) -> str:
        return f"AgentLabelSet({sorted(self._labels)!r})"


# ===== Dispatch =====


class DispatchInput(BaseModel):
    """One input parameter of a manual dispatch.

    Scalars arrive as their literal YAML text, so `default: 3` becomes "3".
    Null values fall back to the field default.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    description: str = ""
    required: bool = False
    default: str = ""
    type: str = ""
    options: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class DispatchSchema(BaseModel):
    """Inputs accepted by a manually dispatched run, in declaration order."""

    inputs: list[DispatchInput] = Field(default_factory=list)


class DispatchForm(BaseModel):
    """Everything needed to render a manual-run form."""

    schema_: DispatchSchema = Field(alias="schema")
    branches: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


# ===== Diagnostics =====


class DiagnosticKind(str, Enum):
    """Kinds of workflow diagnostics, each with its own message template."""

    PARSE_ERROR = "parse_error"
    NO_RUNNABLE_JOB = "no_runnable_job"
    ALL_JOBS_EMPTY = "all_jobs_empty"
    UNMET_REQUIREMENT = "unmet_requirement"


class WorkflowDiagnostic(BaseModel):
    """Why a workflow cannot currently run as expected.

    `detail` carries the parser message for PARSE_ERROR and the missing label
    for UNMET_REQUIREMENT; it is None for the structural kinds.
    """

    model_config = ConfigDict(frozen=True)

    kind: DiagnosticKind
    detail: str | None = None

    @classmethod
    def parse_error(cls, detail: str) -> "WorkflowDiagnostic":
        return cls(kind=DiagnosticKind.PARSE_ERROR, detail=detail)

    @classmethod
    def no_runnable_job(cls) -> "WorkflowDiagnostic":
        return cls(kind=DiagnosticKind.NO_RUNNABLE_JOB)

    @classmethod
    def all_jobs_empty(cls) -> "WorkflowDiagnostic":
        return cls(kind=DiagnosticKind.ALL_JOBS_EMPTY)

    @classmethod
    def unmet_requirement(cls, label: str) -> "WorkflowDiagnostic":
        return cls(kind=DiagnosticKind.UNMET_REQUIREMENT, detail=label)


# ===== Collaborator inputs =====


class Runner(BaseModel):
    """A registered execution agent and the labels it advertises."""

    name: str
    online: bool = False
    labels: list[str] = Field(default_factory=list)


class WorkflowEntry(BaseModel):
    """A workflow file handed over by a source provider."""

    name: str  # File name, doubles as the workflow id
    content: bytes
    is_global: bool = False  # Came from a shared (cross-project) source


# ===== Listing output =====


class WorkflowStatus(BaseModel):
    """Presentation values for one listed workflow."""

    name: str
    is_global: bool = False
    diagnostic: WorkflowDiagnostic | None = None
    err_msg: str = ""
    fingerprint: str | None = None  # SHA-256 prefix of the raw content


class WorkflowListing(BaseModel):
    """Result of one listing pass.

    Attributes:
        workflows: One status per entry, in source order
        selected: Workflow id requested by the caller, if any
        selected_disabled: True if the selected workflow is disabled
        dispatch: Dispatch schema of the selected workflow, if it has one
    """

    workflows: list[WorkflowStatus] = Field(default_factory=list)
    selected: str | None = None
    selected_disabled: bool = False
    dispatch: DispatchSchema | None = None

    @property
    def has_diagnostics(self) -> bool:
        return any(status.diagnostic is not None for status in self.workflows)
