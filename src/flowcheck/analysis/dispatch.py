"""Extraction of manual dispatch (workflow_dispatch) input schemas.

The `on:` section is valid in three shapes, and all three may declare a
manual trigger:

    on: workflow_dispatch
    on: [push, workflow_dispatch]
    on:
      workflow_dispatch:
        inputs:
          env:
            type: choice
            options: [prod, staging]

Only the mapping shape can declare inputs. Malformed detail never turns into
an error: a manual trigger whose configuration cannot be decoded is reported
as "dispatch supported, no inputs", and an input that cannot be decoded is
skipped.
"""

import structlog

from flowcheck.analysis.decoder import NodeMapping, decode_node
from flowcheck.types import (
    DispatchForm,
    DispatchInput,
    DispatchSchema,
    TriggerKind,
    TriggerSpec,
)

logger = structlog.get_logger(__name__)

WORKFLOW_DISPATCH = "workflow_dispatch"


def _extract_inputs(config: NodeMapping) -> list[DispatchInput]:
    if "inputs" not in config:
        return []
    inputs_result = decode_node(config.get("inputs"), NodeMapping)
    if not inputs_result.ok:
        return []

    # Ordered overwrite: a repeated name keeps its first position, last value
    by_name: dict[str, DispatchInput] = {}
    for name, value_node in inputs_result.value:
        if not name:
            continue
        result = decode_node(value_node, DispatchInput)
        if not result.ok:
            logger.debug("dispatch_input_skipped", input=name)
            continue
        if name in by_name:
            logger.debug("dispatch_input_redeclared", input=name)
        by_name[name] = result.value.model_copy(update={"name": name})
    return list(by_name.values())


def extract_dispatch(trigger: TriggerSpec) -> DispatchSchema | None:
    """Return the dispatch schema if the workflow can be run manually.

    Args:
        trigger: Trigger spec of a parsed workflow

    Returns:
        DispatchSchema (possibly with no inputs) when `workflow_dispatch` is
        declared, None otherwise
    """
    if trigger.kind == TriggerKind.SCALAR:
        result = decode_node(trigger.node, str)
        if result.ok and result.value == WORKFLOW_DISPATCH:
            return DispatchSchema()
        return None

    if trigger.kind == TriggerKind.SEQUENCE:
        result = decode_node(trigger.node, list[str])
        if result.ok and WORKFLOW_DISPATCH in result.value:
            return DispatchSchema()
        return None

    if trigger.kind == TriggerKind.MAPPING:
        result = decode_node(trigger.node, NodeMapping)
        if not result.ok or WORKFLOW_DISPATCH not in result.value:
            return None

        config = decode_node(result.value.get(WORKFLOW_DISPATCH), NodeMapping)
        if not config.ok:
            return DispatchSchema()
        return DispatchSchema(inputs=_extract_inputs(config.value))

    return None


def order_branches(branches: list[str], default_branch: str | None) -> list[str]:
    """Put the default branch first if it exists, keep the rest in order."""
    if not default_branch or default_branch not in branches:
        return list(branches)
    return [default_branch] + [branch for branch in branches if branch != default_branch]


def build_dispatch_form(
    schema: DispatchSchema,
    branches: list[str] | None = None,
    default_branch: str | None = None,
    tags: list[str] | None = None,
) -> DispatchForm:
    """Assemble the values a manual-run form is rendered from.

    Branches and tags come from the caller; this only orders them.
    """
    return DispatchForm(
        schema=schema,
        branches=order_branches(branches or [], default_branch),
        tags=list(tags or []),
    )
