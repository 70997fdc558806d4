"""flowcheck - Schedulability and runner checks for automation workflows."""

# Version (managed in pyproject.toml)
__version__ = "0.1.0"

__all__ = ["__version__"]
