"""Generate reports for a workflow listing.

Provides human-readable and machine-readable renderings of a listing pass.
Reports include:

- One row per workflow with its content fingerprint (SHA-256 prefix)
- The rendered diagnostic message of every workflow that has one
- The dispatch inputs of the selected workflow, if any

Report Formats:
    - Markdown: Human-readable, suitable for CI job summaries
    - JSON: Structured data for programmatic processing
"""

import json

from flowcheck.types import DispatchSchema, WorkflowListing


def _dispatch_lines(selected: str, dispatch: DispatchSchema) -> list[str]:
    lines = ["## Manual Dispatch", "", f"**Workflow:** `{selected}`", ""]
    if not dispatch.inputs:
        lines.extend(["This workflow can be run manually and declares no inputs.", ""])
        return lines

    lines.extend(
        [
            "| Input | Type | Required | Default | Options | Description |",
            "|---|---|---|---|---|---|",
        ]
    )
    for item in dispatch.inputs:
        lines.append(
            f"| `{item.name}` | {item.type or 'string'} | {'yes' if item.required else 'no'} "
            f"| {item.default} | {', '.join(item.options)} | {item.description} |"
        )
    lines.append("")
    return lines


def generate_markdown_report(listing: WorkflowListing, title: str = "Workflow Check") -> str:
    """Generate a Markdown report for a listing.

    Args:
        listing: Result of evaluate_listing
        title: Report heading

    Returns:
        Markdown-formatted report
    """
    flagged = [status for status in listing.workflows if status.diagnostic is not None]

    lines = [
        f"# {title}",
        "",
        f"**Workflows:** {len(listing.workflows)}  ",
        f"**With Diagnostics:** {len(flagged)}",
        "",
    ]

    if listing.workflows:
        lines.extend(
            [
                "| Workflow | Source | Fingerprint | Status |",
                "|---|---|---|---|",
            ]
        )
        for status in listing.workflows:
            source = "shared" if status.is_global else "project"
            state = status.diagnostic.kind.value if status.diagnostic else "ok"
            lines.append(f"| `{status.name}` | {source} | `{status.fingerprint}` | {state} |")
        lines.append("")
    else:
        lines.extend(["No workflow files found.", ""])

    if flagged:
        lines.extend(["## Diagnostics", ""])
        for i, status in enumerate(flagged, 1):
            lines.extend([f"### {i}. `{status.name}`", "", status.err_msg, ""])

    if listing.selected and listing.selected_disabled:
        lines.extend([f"Workflow `{listing.selected}` is disabled.", ""])
    elif listing.selected and listing.dispatch is not None:
        lines.extend(_dispatch_lines(listing.selected, listing.dispatch))

    return "\n".join(lines)


def generate_json_report(listing: WorkflowListing) -> str:
    """Generate a JSON report for a listing.

    Args:
        listing: Result of evaluate_listing

    Returns:
        JSON-formatted report
    """
    report_data = {
        "workflows_count": len(listing.workflows),
        "diagnostics_count": sum(1 for s in listing.workflows if s.diagnostic is not None),
        "workflows": [
            {
                "name": status.name,
                "global": status.is_global,
                "fingerprint": status.fingerprint,
                "diagnostic": status.diagnostic.kind.value if status.diagnostic else None,
                "detail": status.diagnostic.detail if status.diagnostic else None,
                "err_msg": status.err_msg,
            }
            for status in listing.workflows
        ],
        "selected": listing.selected,
        "selected_disabled": listing.selected_disabled,
        "dispatch": listing.dispatch.model_dump() if listing.dispatch else None,
    }

    return json.dumps(report_data, indent=2)
