"""Tests for the diagnostic message catalog."""

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from flowcheck.loader import MessageCatalog, MessageError, load_catalog
from flowcheck.loader.messages import DEFAULT_MESSAGES, NO_JOB, NO_MATCHING_RUNNER
from flowcheck.types import WorkflowDiagnostic


@pytest.mark.unit
class TestDefaultCatalog:
    """Tests for the built-in messages."""

    def test_render_each_diagnostic(self) -> None:
        catalog = MessageCatalog()

        assert catalog.render_diagnostic(WorkflowDiagnostic.parse_error("line 3: bad")) == (
            "Workflow config file is invalid. Please check your config file: line 3: bad"
        )
        assert catalog.render_diagnostic(WorkflowDiagnostic.unmet_requirement("gpu")) == (
            "No matching online runner with label: gpu"
        )
        assert catalog.render_diagnostic(WorkflowDiagnostic.no_runnable_job()) == (
            "The workflow must contain at least one job without dependencies."
        )
        assert catalog.render_diagnostic(WorkflowDiagnostic.all_jobs_empty()) == (
            "The workflow must contain at least one job."
        )

    def test_no_diagnostic_renders_empty(self) -> None:
        assert MessageCatalog().render_diagnostic(None) == ""

    def test_detail_is_not_escaped(self) -> None:
        """Test that parser text is passed through as-is."""
        message = MessageCatalog().render_diagnostic(WorkflowDiagnostic.unmet_requirement("<a&b>"))

        assert message.endswith("<a&b>")

    def test_unknown_key(self) -> None:
        with pytest.raises(MessageError, match="Unknown message key"):
            MessageCatalog().render("runs.nope")

    def test_load_without_path(self) -> None:
        assert load_catalog(None).messages == DEFAULT_MESSAGES


@pytest.mark.unit
class TestCatalogOverrides:
    """Tests for override files and broken templates."""

    def test_override_file(self, messages_dir: Path) -> None:
        catalog = load_catalog(messages_dir / "override.yaml")

        message = catalog.render_diagnostic(WorkflowDiagnostic.unmet_requirement("gpu"))
        assert message == "Nobody offers gpu"
        assert catalog.render(NO_JOB) == "Add a job."
        assert catalog.render_diagnostic(WorkflowDiagnostic.no_runnable_job()) == (
            "The workflow must contain at least one job without dependencies."
        )

    def test_syntax_error_in_template(self, messages_dir: Path) -> None:
        catalog = load_catalog(messages_dir / "broken.yaml")

        with pytest.raises(MessageError, match="Template syntax error"):
            catalog.render(NO_JOB)

    def test_undefined_variable(self) -> None:
        catalog = MessageCatalog({NO_MATCHING_RUNNER: "Missing {{ runner }}"})

        with pytest.raises(MessageError, match="Undefined variable"):
            catalog.render_diagnostic(WorkflowDiagnostic.unmet_requirement("gpu"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(MessageError, match="Failed to load"):
            load_catalog(tmp_path / "missing.yaml")

    def test_not_a_string_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "messages.yaml"
        path.write_text("- runs.no_job\n", encoding="utf-8")

        with pytest.raises(MessageError, match="must map message keys to strings"):
            load_catalog(path)

    def test_unknown_keys_are_logged(self, tmp_path: Path) -> None:
        path = tmp_path / "messages.yaml"
        path.write_text("runs.typo: hello\n", encoding="utf-8")

        with capture_logs() as cap_logs:
            catalog = load_catalog(path)

        warnings = [log for log in cap_logs if log["log_level"] == "warning"]
        assert warnings[0]["event"] == "message_catalog_unknown_keys"
        assert warnings[0]["keys"] == ["runs.typo"]
        assert catalog.render("runs.typo") == "hello"
