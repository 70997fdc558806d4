"""Configuration management for flowcheck.

Provides environment-based configuration using Pydantic Settings.
All settings can be overridden via environment variables with FLOWCHECK_ prefix.

Example:
    export FLOWCHECK_LOG_LEVEL=DEBUG
    export FLOWCHECK_RUNNERS_FILE=./runners.yaml
    export FLOWCHECK_DISABLED_WORKFLOWS='["nightly.yml"]'
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowcheck.loader.yaml_loader import MAX_WORKFLOW_SIZE_BYTES


class FlowcheckConfig(BaseSettings):
    """Configuration settings for flowcheck.

    Loads settings from environment variables (FLOWCHECK_ prefix) and .env file.
    Settings cascade: .env file < environment variables < explicit overrides.

    Configuration Groups:
        Sources: Where workflow files are looked up
        Analysis: Size limits and disabled workflows
        Presentation: Message catalog overrides
        Logging: Level and renderer
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # FLOWCHECK_DEBUG is read by the CLI, not a setting
    )

    # Sources
    workflow_dirs: list[str] = Field(
        default_factory=lambda: [".gitea/workflows", ".github/workflows"],
        description="Workflow directories relative to the project root; first existing one wins",
    )
    runners_file: Path | None = Field(
        default=None,
        description="Runner registry file (YAML/JSON) used when no --label is given",
    )

    # Analysis
    max_workflow_size_bytes: int = Field(
        default=MAX_WORKFLOW_SIZE_BYTES,
        ge=1,
        description="Workflow files larger than this are reported as invalid",
    )
    disabled_workflows: list[str] = Field(
        default_factory=list,
        description="Workflow ids that are disabled (no dispatch form is offered)",
    )

    # Presentation
    messages_path: Path | None = Field(
        default=None,
        description="YAML file overriding diagnostic message templates",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: str = Field(default="console", description="Log format (json or console)")
