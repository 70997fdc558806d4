"""YAML loader for workflow files.

Turns the raw bytes of a workflow file into a `WorkflowDocument`. The text
is composed into a ruamel.yaml node tree instead of being constructed into
Python objects, so the `on:` section keeps its authored shape and key order
for the dispatch extractor.

Parse Flow:
    1. Size check and UTF-8 decoding
    2. Compose a single YAML document (safe, pure-Python loader)
    3. Root mapping -> name, trigger spec and jobs
    4. Each job -> needs + runs-on labels (best-effort, via the node decoder)

Structural problems raise LoadError: bad YAML, a non-mapping root or jobs
section, duplicate keys, bad `<<` merge values, and aliases that recurse or
expand past MAX_EXPANDED_NODES. Malformed values inside a job only degrade to
defaults.
"""

import structlog
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError
from ruamel.yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from flowcheck.analysis.decoder import (
    DecodeFailure,
    NodeMapping,
    decode_node,
    is_null,
    mapping_pairs,
)
from flowcheck.types import Job, TriggerKind, TriggerSpec, WorkflowDocument

logger = structlog.get_logger(__name__)

# Workflow files are small; anything bigger is almost certainly not a workflow
MAX_WORKFLOW_SIZE_BYTES = 1024 * 1024  # 1MB

# Nodes a document may expand to once every alias is followed
MAX_EXPANDED_NODES = 400_000


class LoadError(Exception):
    """Raised when a workflow file cannot be parsed."""

    pass


def _compose(text: str) -> Node | None:
    yaml = YAML(typ="safe", pure=True)
    try:
        return yaml.compose(text)
    except YAMLError as e:
        raise LoadError(str(e)) from e
    except RecursionError as e:
        raise LoadError("workflow document is nested too deeply") from e


def _children(node: Node) -> list[Node]:
    if isinstance(node, MappingNode):
        return [child for pair in node.value for child in pair]
    if isinstance(node, SequenceNode):
        return list(node.value)
    return []


def _check_aliases(root: Node) -> None:
    """Reject documents whose aliases form a cycle or expand too far.

    Aliases share their anchored node, so sizes are counted per node once
    and summed for every reference.

    Raises:
        LoadError: If an anchored node contains itself, or the document expands
                   to more than MAX_EXPANDED_NODES nodes
    """
    sizes: dict[int, int] = {}
    on_path: set[int] = set()
    stack: list[tuple[Node, bool]] = [(root, False)]
    while stack:
        node, finished = stack.pop()
        key = id(node)
        if finished:
            on_path.discard(key)
            size = 1 + sum(sizes[id(child)] for child in _children(node))
            if size > MAX_EXPANDED_NODES:
                raise LoadError("workflow document contains excessive aliasing")
            sizes[key] = size
            continue
        if key in sizes:
            continue
        if key in on_path:
            raise LoadError(f"anchor on line {node.start_mark.line + 1} contains itself")
        on_path.add(key)
        stack.append((node, True))
        stack.extend((child, False) for child in _children(node))


def _unique_mapping(node: Node, where: str) -> NodeMapping:
    if not isinstance(node, MappingNode):
        raise LoadError(f"{where} must be a mapping, got a {node.id}")
    try:
        node_pairs = mapping_pairs(node)
    except DecodeFailure as e:
        raise LoadError(f"{where}: {e}") from e
    pairs: list[tuple[str, Node]] = []
    seen: set[str] = set()
    for key_node, value_node in node_pairs:
        if not isinstance(key_node, ScalarNode):
            raise LoadError(f"{where} keys must be scalars (line {key_node.start_mark.line + 1})")
        key = str(key_node.value)
        if key in seen:
            raise LoadError(
                f"{where}: mapping key {key!r} already defined "
                f"(line {key_node.start_mark.line + 1})"
            )
        seen.add(key)
        pairs.append((key, value_node))
    return NodeMapping(pairs)


def _trigger_spec(node: Node | None) -> TriggerSpec:
    if is_null(node):
        return TriggerSpec(TriggerKind.NONE)
    if isinstance(node, ScalarNode):
        return TriggerSpec(TriggerKind.SCALAR, node)
    if isinstance(node, SequenceNode):
        return TriggerSpec(TriggerKind.SEQUENCE, node)
    if isinstance(node, MappingNode):
        return TriggerSpec(TriggerKind.MAPPING, node)
    return TriggerSpec(TriggerKind.NONE, node)


def _string_or_list(node: Node | None) -> list[str]:
    """Decode `x` or `[x, y]` into a list of strings; empty on failure."""
    if is_null(node):
        return []
    if isinstance(node, ScalarNode):
        result = decode_node(node, str)
        return [result.value] if result.ok else []
    result = decode_node(node, list[str])
    return result.value if result.ok else []


def _runs_on(node: Node | None) -> list[str]:
    if isinstance(node, MappingNode):
        result = decode_node(node, NodeMapping)
        if not result.ok:
            return []
        labels = _string_or_list(result.value.get("labels"))
        group = decode_node(result.value.get("group"), str)
        if group.ok and group.value:
            labels.append(group.value)
        return labels
    return _string_or_list(node)


def _job(job_id: str, node: Node) -> Job | None:
    if is_null(node):
        return None
    body = _unique_mapping(node, f"job {job_id!r}")
    name = decode_node(body.get("name"), str)
    return Job(
        id=job_id,
        needs=frozenset(_string_or_list(body.get("needs"))),
        runs_on=tuple(_runs_on(body.get("runs-on"))),
        name=name.value if name.ok and name.value else None,
    )


def parse_workflow(text: str) -> WorkflowDocument:
    """Parse workflow text into a WorkflowDocument.

    Raises:
        LoadError: If the text is not a structurally valid workflow
    """
    root = _compose(text)
    if root is None:
        raise LoadError("workflow document is empty")
    _check_aliases(root)
    top = _unique_mapping(root, "workflow")

    jobs: dict[str, Job | None] = {}
    jobs_node = top.get("jobs")
    if not is_null(jobs_node):
        for job_id, job_node in _unique_mapping(jobs_node, "jobs"):
            jobs[job_id] = _job(job_id, job_node)

    name = decode_node(top.get("name"), str)
    return WorkflowDocument(
        jobs=jobs,
        trigger=_trigger_spec(top.get("on")),
        name=name.value if name.ok and name.value else None,
    )


def load_workflow(
    content: bytes | str, max_size: int = MAX_WORKFLOW_SIZE_BYTES
) -> WorkflowDocument:
    """Load a workflow from raw file content.

    Args:
        content: Raw bytes (UTF-8) or already decoded text
        max_size: Maximum accepted size in bytes

    Returns:
        Parsed WorkflowDocument

    Raises:
        LoadError: If the content is too large, not UTF-8, or not a valid workflow
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    if len(raw) > max_size:
        raise LoadError(f"workflow file too large: {len(raw)} bytes exceeds maximum of {max_size}")

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise LoadError(f"workflow file is not valid UTF-8: {e}") from e

    document = parse_workflow(text)
    logger.debug(
        "workflow_parsed",
        workflow_name=document.name,
        jobs=list(document.jobs),
        trigger=document.trigger.kind.value,
    )
    return document
