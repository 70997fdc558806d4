"""Tests for best-effort node decoding."""

import time

import pytest
from structlog.testing import capture_logs

from flowcheck.analysis.decoder import (
    DecodeFailure,
    NodeMapping,
    decode_node,
    is_null,
    mapping_pairs,
    render_node,
    to_plain,
)
from flowcheck.types import DispatchInput


@pytest.mark.unit
class TestScalarTargets:
    """Tests for str and bool targets."""

    def test_string_scalar(self, compose) -> None:
        result = decode_node(compose("hello"), str)

        assert result.ok is True
        assert result.value == "hello"

    def test_number_keeps_literal_text(self, compose) -> None:
        """Test that non-string scalars decode to their authored text."""
        assert decode_node(compose("3"), str).value == "3"
        assert decode_node(compose("1.50"), str).value == "1.50"

    def test_null_decodes_to_empty_string(self, compose) -> None:
        result = decode_node(compose("~"), str)

        assert result.ok is True
        assert result.value == ""

    def test_missing_node_decodes_like_null(self) -> None:
        assert decode_node(None, str).value == ""
        assert decode_node(None, bool).value is False
        assert decode_node(None, list[str]).value == []

    def test_mapping_is_not_a_string(self, compose) -> None:
        result = decode_node(compose("{a: 1}"), str)

        assert result.ok is False
        assert result.value is None

    def test_bool_scalar(self, compose) -> None:
        assert decode_node(compose("true"), bool).value is True
        assert decode_node(compose("false"), bool).value is False

    def test_quoted_bool_is_rejected(self, compose) -> None:
        """Test that a string that looks like a bool does not decode as one."""
        result = decode_node(compose('"true"'), bool)

        assert result.ok is False


@pytest.mark.unit
class TestCollectionTargets:
    """Tests for list[str] and NodeMapping targets."""

    def test_string_list(self, compose) -> None:
        result = decode_node(compose("[linux, 64, x]"), list[str])

        assert result.ok is True
        assert result.value == ["linux", "64", "x"]

    def test_scalar_is_not_a_list(self, compose) -> None:
        assert decode_node(compose("linux"), list[str]).ok is False

    def test_nested_list_fails(self, compose) -> None:
        assert decode_node(compose("[a, [b, c]]"), list[str]).ok is False

    def test_mapping_keeps_order_and_duplicates(self, compose) -> None:
        result = decode_node(compose("b: 1\na: 2\nb: 3\n"), NodeMapping)

        assert result.ok is True
        mapping = result.value
        assert mapping.keys() == ["b", "a", "b"]
        assert len(mapping) == 3
        assert "a" in mapping
        assert "c" not in mapping
        assert mapping.get("b").value == "3"
        assert mapping.get("c") is None

    def test_null_mapping_is_empty(self, compose) -> None:
        result = decode_node(compose("~"), NodeMapping)

        assert result.ok is True
        assert len(result.value) == 0

    def test_sequence_is_not_a_mapping(self, compose) -> None:
        assert decode_node(compose("[a, b]"), NodeMapping).ok is False


@pytest.mark.unit
class TestRecordTargets:
    """Tests for decoding mappings into Pydantic models."""

    def test_full_record(self, compose) -> None:
        node = compose(
            "{description: Env, required: true, default: 3, type: choice, options: [x, 1]}"
        )
        result = decode_node(node, DispatchInput)

        assert result.ok is True
        item = result.value
        assert item.description == "Env"
        assert item.required is True
        assert item.default == "3"
        assert item.type == "choice"
        assert item.options == ["x", "1"]

    def test_null_fields_use_defaults(self, compose) -> None:
        result = decode_node(compose("{description: ~, options: ~}"), DispatchInput)

        assert result.ok is True
        assert result.value.description == ""
        assert result.value.options == []

    def test_null_record_uses_defaults(self, compose) -> None:
        result = decode_node(compose("~"), DispatchInput)

        assert result.ok is True
        assert result.value == DispatchInput()

    def test_unknown_fields_are_ignored(self, compose) -> None:
        result = decode_node(compose("{description: d, color: red}"), DispatchInput)

        assert result.ok is True
        assert result.value.description == "d"

    def test_scalar_is_not_a_record(self, compose) -> None:
        assert decode_node(compose("oops"), DispatchInput).ok is False

    def test_quoted_bool_field_fails_the_record(self, compose) -> None:
        assert decode_node(compose('{required: "true"}'), DispatchInput).ok is False

    def test_list_for_string_field_fails_the_record(self, compose) -> None:
        assert decode_node(compose("{default: [a, b]}"), DispatchInput).ok is False


@pytest.mark.unit
class TestDecodeLogging:
    """Tests for failure logging."""

    def test_failure_is_logged_as_warning(self, compose) -> None:
        """Test that a failed decode is logged with the node and target."""
        with capture_logs() as cap_logs:
            decode_node(compose("{a: 1}"), str)

        assert len(cap_logs) == 1
        entry = cap_logs[0]
        assert entry["event"] == "node_decode_failed"
        assert entry["log_level"] == "warning"
        assert entry["target"] == "str"
        assert entry["node"] == "{a: 1}"
        assert entry["line"] == 1

    def test_success_is_not_logged(self, compose) -> None:
        with capture_logs() as cap_logs:
            decode_node(compose("[a]"), list[str])

        assert cap_logs == []

    def test_unsupported_target_raises(self, compose) -> None:
        """Test that a programming error is not swallowed."""
        with pytest.raises(TypeError, match="unsupported decode target"):
            decode_node(compose("1"), int)


@pytest.mark.unit
class TestHelpers:
    """Tests for node helpers."""

    def test_is_null(self, compose) -> None:
        assert is_null(None) is True
        assert is_null(compose("~")) is True
        assert is_null(compose("null")) is True
        assert is_null(compose('"null"')) is False
        assert is_null(compose("x")) is False

    def test_render_node_flow_style(self, compose) -> None:
        assert render_node(compose("a: [1, 2]\nb: ~\n")) == "{a: [1, 2], b: null}"

    def test_render_node_truncates(self, compose) -> None:
        rendered = render_node(compose("[" + ", ".join(["x" * 20] * 30) + "]"))

        assert len(rendered) == 200
        assert rendered.endswith("...")

    def test_to_plain(self, compose) -> None:
        node = compose("a: 1\nb: [x, ~]\nc: ~\na: 2\n")

        assert to_plain(node) == {"a": "2", "b": ["x", ""], "c": None}


@pytest.mark.unit
class TestMergeKeys:
    """Tests for `<<` merge key expansion."""

    MERGED = (
        "base: &base {x: 1, y: 2}\n"
        "extra: &extra {y: 3, z: 4}\n"
        "merged: {<<: [*base, *extra], x: 0}\n"
    )

    def test_explicit_key_wins_and_first_merge_wins(self, compose) -> None:
        mapping = decode_node(compose(self.MERGED), NodeMapping).value

        merged = decode_node(mapping.get("merged"), NodeMapping).value
        assert merged.keys() == ["y", "z", "x"]
        assert merged.get("x").value == "0"
        assert merged.get("y").value == "2"
        assert merged.get("z").value == "4"

    def test_to_plain_expands_merges(self, compose) -> None:
        node = compose("base: &base {type: choice}\ninput: {<<: *base, required: true}\n")

        assert to_plain(node)["input"] == {"type": "choice", "required": "true"}

    def test_record_with_merged_fields(self, compose) -> None:
        node = compose("base: &base {required: true, type: choice}\ninput: {<<: *base}\n")
        input_node = decode_node(node, NodeMapping).value.get("input")

        result = decode_node(input_node, DispatchInput)

        assert result.ok is True
        assert result.value.required is True
        assert result.value.type == "choice"

    def test_merge_of_a_scalar_fails(self, compose) -> None:
        with pytest.raises(DecodeFailure, match="expects a mapping"):
            mapping_pairs(compose("{<<: oops, a: 1}"))

        assert decode_node(compose("{<<: [oops]}"), NodeMapping).ok is False

    def test_mapping_merging_itself_fails(self, compose) -> None:
        with pytest.raises(DecodeFailure, match="its own mapping"):
            mapping_pairs(compose("&m {<<: *m, a: 1}"))


@pytest.mark.unit
class TestRecursiveAndExpandingAliases:
    """Tests for aliases that refer back to their anchor or expand hugely."""

    def test_recursive_sequence_fails_to_decode(self, compose) -> None:
        with capture_logs() as cap_logs:
            result = decode_node(compose("&x [*x]"), list[str])

        assert result.ok is False
        assert cap_logs[0]["node"] == "[<recursive>]"

    def test_recursive_mapping_fails_to_decode(self, compose) -> None:
        node = compose("&m {options: *m}")

        assert render_node(node) == "{options: <recursive>}"
        assert decode_node(node, DispatchInput).ok is False
        with pytest.raises(DecodeFailure, match="contains itself"):
            to_plain(node)

    def test_shared_alias_is_not_recursive(self, compose) -> None:
        node = compose("a: &a [x]\nb: *a\n")

        assert render_node(node) == "{a: [x], b: [x]}"
        assert to_plain(node) == {"a": ["x"], "b": ["x"]}

    def test_expanding_alias_renders_within_limit(self, compose, alias_bomb: str) -> None:
        bomb = decode_node(compose(alias_bomb), NodeMapping).value.get("x-i")

        start = time.perf_counter()
        rendered = render_node(bomb)

        assert time.perf_counter() - start < 2
        assert len(rendered) == 200
        assert rendered.startswith("[[[[[[[[[lol, lol")

    def test_expanding_alias_is_not_converted(self, compose, alias_bomb: str) -> None:
        node = compose(alias_bomb + "input:\n  options: *i\n")
        input_node = decode_node(node, NodeMapping).value.get("input")

        start = time.perf_counter()
        with pytest.raises(DecodeFailure, match="expands to more than"):
            to_plain(input_node)
        result = decode_node(input_node, DispatchInput)

        assert time.perf_counter() - start < 2
        assert result.ok is False
