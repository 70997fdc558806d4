"""Best-effort decoding of raw YAML nodes into typed values.

Workflow files are authored by hand, so any field may hold a shape the
analysis does not expect. Every conversion from a raw ruamel.yaml node goes
through `decode_node`, which never raises: a failed conversion is logged and
reported as `DecodeResult(ok=False)` so callers can fall back to defaults.

Supported targets:
    - str: any scalar, as its literal text (null -> "")
    - bool: true/false scalars (null -> False)
    - list[str]: a sequence of scalars (null -> [])
    - NodeMapping: a mapping kept as ordered (key, node) pairs, `<<` merges expanded
    - any Pydantic model: a mapping decoded field by field (null -> defaults)
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from ruamel.yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

logger = structlog.get_logger(__name__)

T = TypeVar("T")

NULL_TAG = "tag:yaml.org,2002:null"
BOOL_TAG = "tag:yaml.org,2002:bool"
MERGE_TAG = "tag:yaml.org,2002:merge"

# Rendered nodes are only used in log lines
_MAX_RENDER_LENGTH = 200

# Upper bound on values produced by to_plain, aliases counted once per use
_MAX_PLAIN_VALUES = 100_000


class DecodeFailure(ValueError):
    """Raised internally when a node does not fit the requested shape."""


class NodeMapping:
    """Ordered (key, node) pairs of a YAML mapping.

    Duplicate keys are kept in `pairs`; `get` resolves them to the last one.
    """

    __slots__ = ("pairs",)

    def __init__(self, pairs: list[tuple[str, Node]] | None = None) -> None:
        self.pairs = pairs or []

    def get(self, key: str) -> Node | None:
        found = None
        for pair_key, value in self.pairs:
            if pair_key == key:
                found = value
        return found

    def __contains__(self, key: object) -> bool:
        return any(pair_key == key for pair_key, _ in self.pairs)

    def __iter__(self) -> Iterator[tuple[str, Node]]:
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def keys(self) -> list[str]:
        return [key for key, _ in self.pairs]


@dataclass(frozen=True)
class DecodeResult(Generic[T]):
    """Outcome of a decode attempt. `value` is only meaningful when ok."""

    value: T | None
    ok: bool


def is_null(node: Node | None) -> bool:
    return node is None or (isinstance(node, ScalarNode) and node.tag == NULL_TAG)


def mapping_pairs(
    node: MappingNode, _active: frozenset[int] = frozenset()
) -> list[tuple[Node, Node]]:
    """Key/value node pairs of a mapping with `<<` merge keys expanded.

    Merged pairs take the place of their `<<` key. An explicit key overrides
    a merged one, and among merged mappings the first one listed wins.

    Raises:
        DecodeFailure: If a merge value is not a mapping or list of mappings,
                       or a mapping merges itself
    """
    if id(node) in _active:
        raise DecodeFailure("merge key refers to its own mapping")
    active = _active | {id(node)}

    explicit = {
        str(key.value)
        for key, _ in node.value
        if isinstance(key, ScalarNode) and key.tag != MERGE_TAG
    }
    merged: set[str] = set()
    pairs: list[tuple[Node, Node]] = []
    for key, value in node.value:
        if not (isinstance(key, ScalarNode) and key.tag == MERGE_TAG):
            pairs.append((key, value))
            continue
        sources = value.value if isinstance(value, SequenceNode) else [value]
        for source in sources:
            if not isinstance(source, MappingNode):
                raise DecodeFailure(
                    f"merge key expects a mapping or a list of mappings, found a {source.id}"
                )
            for merged_key, merged_value in mapping_pairs(source, active):
                if isinstance(merged_key, ScalarNode):
                    name = str(merged_key.value)
                    if name in explicit or name in merged:
                        continue
                    merged.add(name)
                pairs.append((merged_key, merged_value))
    return pairs


def render_node(node: Node | None) -> str:
    """Render a node in compact flow style for log output.

    Rendering stops once the length limit is reached, so a heavily aliased
    node is never expanded in full.
    """
    parts: list[str] = []
    length = 0
    for chunk in _render(node, set()):
        parts.append(chunk)
        length += len(chunk)
        if length > _MAX_RENDER_LENGTH:
            break
    text = "".join(parts)
    if len(text) > _MAX_RENDER_LENGTH:
        return text[: _MAX_RENDER_LENGTH - 3] + "..."
    return text


def _render(node: Node | None, active: set[int]) -> Iterator[str]:
    if node is None or is_null(node):
        yield "null"
        return
    if isinstance(node, ScalarNode):
        yield str(node.value)
        return
    if id(node) in active:
        yield "<recursive>"
        return

    active.add(id(node))
    try:
        if isinstance(node, SequenceNode):
            yield "["
            for i, item in enumerate(node.value):
                if i:
                    yield ", "
                yield from _render(item, active)
            yield "]"
        elif isinstance(node, MappingNode):
            yield "{"
            for i, (key, value) in enumerate(node.value):
                if i:
                    yield ", "
                yield from _render(key, active)
                yield ": "
                yield from _render(value, active)
            yield "}"
        else:
            yield repr(node)
    finally:
        active.discard(id(node))


def _target_name(target: Any) -> str:
    if getattr(target, "__origin__", None) is not None:
        return str(target)  # list[str]
    return getattr(target, "__name__", None) or str(target)


def _scalar_text(node: Node) -> str:
    if not isinstance(node, ScalarNode):
        raise DecodeFailure(f"expected a scalar, found a {node.id}")
    if node.tag == NULL_TAG:
        return ""
    return str(node.value)


def _to_bool(node: Node) -> bool:
    if is_null(node):
        return False
    if not isinstance(node, ScalarNode) or node.tag != BOOL_TAG:
        raise DecodeFailure(f"cannot decode {render_node(node)!r} as a bool")
    return str(node.value).lower() == "true"


def _to_string_list(node: Node) -> list[str]:
    if is_null(node):
        return []
    if not isinstance(node, SequenceNode):
        raise DecodeFailure(f"expected a sequence, found a {node.id}")
    return [_scalar_text(item) for item in node.value]


def _to_mapping(node: Node) -> NodeMapping:
    if is_null(node):
        return NodeMapping()
    if not isinstance(node, MappingNode):
        raise DecodeFailure(f"expected a mapping, found a {node.id}")
    return NodeMapping([(_scalar_text(key), value) for key, value in mapping_pairs(node)])


class _PlainConverter:
    """Node -> plain data walk that refuses alias cycles and runaway expansion."""

    def __init__(self) -> None:
        self.count = 0
        self.active: set[int] = set()

    def convert(self, node: Node | None) -> Any:
        self.count += 1
        if self.count > _MAX_PLAIN_VALUES:
            raise DecodeFailure(f"node expands to more than {_MAX_PLAIN_VALUES} values")
        if is_null(node):
            return None
        if isinstance(node, ScalarNode):
            return str(node.value)
        if id(node) in self.active:
            raise DecodeFailure("node contains itself through an alias")

        self.active.add(id(node))
        try:
            if isinstance(node, SequenceNode):
                # Null items decode to "" as they do for list[str]
                return ["" if is_null(item) else self.convert(item) for item in node.value]
            if isinstance(node, MappingNode):
                return {
                    _scalar_text(key): self.convert(value) for key, value in mapping_pairs(node)
                }
        finally:
            self.active.discard(id(node))
        raise DecodeFailure(f"unsupported node {node!r}")


def to_plain(node: Node | None) -> Any:
    """Convert a node into plain Python data for model validation.

    Scalars stay as their literal text. A null value becomes None, a null list
    item becomes "". Merge keys are expanded, and for duplicate mapping keys
    the last value wins.

    Raises:
        DecodeFailure: If the node refers to itself or expands to too many values
    """
    return _PlainConverter().convert(node)


def _to_record(node: Node, model: type[BaseModel]) -> BaseModel:
    if is_null(node):
        return model()
    if not isinstance(node, MappingNode):
        raise DecodeFailure(f"expected a mapping, found a {node.id}")
    data = to_plain(node)
    # Booleans must be real YAML booleans, not strings that merely look like one
    for field_name, info in model.model_fields.items():
        if info.annotation is bool and field_name in data and data[field_name] is not None:
            value_node = _to_mapping(node).get(field_name)
            data[field_name] = _to_bool(value_node)
    return model.model_validate(data)


def _convert(node: Node | None, target: Any) -> Any:
    if target is str:
        return "" if is_null(node) else _scalar_text(node)
    if target is bool:
        return _to_bool(node)
    if target == list[str]:
        return _to_string_list(node)
    if target is NodeMapping:
        return _to_mapping(node)
    if isinstance(target, type) and issubclass(target, BaseModel):
        return _to_record(node, target)
    raise TypeError(f"unsupported decode target: {_target_name(target)}")


def decode_node(node: Node | None, target: Any) -> DecodeResult[Any]:
    """Decode a raw node into `target`.

    Args:
        node: ruamel.yaml node (None is treated like YAML null)
        target: str, bool, list[str], NodeMapping or a Pydantic model class

    Returns:
        DecodeResult with ok=False if the node does not fit the target.
        Failures are logged, never raised.
    """
    try:
        return DecodeResult(value=_convert(node, target), ok=True)
    except (DecodeFailure, ValidationError) as e:
        line = node.start_mark.line + 1 if node is not None and node.start_mark else None
        logger.warning(
            "node_decode_failed",
            node=render_node(node),
            target=_target_name(target),
            line=line,
            error=str(e),
        )
        return DecodeResult(value=None, ok=False)
