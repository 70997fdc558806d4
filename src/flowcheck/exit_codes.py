"""Exit codes for the flowcheck CLI.

Follows Unix conventions for consistent error reporting across different
failure modes, so CI jobs can tell a broken invocation apart from a
workflow that needs attention.

Usage:
    Always use named constants instead of raw integers:

    from flowcheck.exit_codes import EX_SCHEMA, EX_OK
    sys.exit(EX_SCHEMA)  # GOOD
    sys.exit(3)  # BAD - unclear meaning

Exit Code Categories:
    0: Success
    2-3: User/input errors (bad flags, unparsable input)
    12-18: Environment errors and workflow diagnostics
    70: System/unexpected errors
"""

# Success
EX_OK = 0
"""Successful execution."""

# User errors
EX_USAGE = 2
"""Command-line usage error (unknown option value such as --format xml)."""

EX_SCHEMA = 3
"""Input could not be parsed.

Returned when a runner registry file fails JSON Schema validation, or when
the workflow given to `dispatch` is not a valid workflow.
"""

# Environment errors
EX_IO = 12
"""Workflow source or registry could not be read."""

EX_DIAGNOSTICS = 18
"""At least one workflow has a diagnostic (only with --strict).

The listing itself succeeded; the diagnostics are printed above the exit.
"""

# System errors
EX_UNKNOWN = 70
"""Unexpected exception not handled by specific error codes.

Indicates a bug in the CLI or an unhandled edge case. When this occurs,
use --verbose to see the full traceback and report the issue.
"""
