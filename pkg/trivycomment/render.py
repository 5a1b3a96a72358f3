"""Markdown rendering for misconfiguration review comments."""

from __future__ import annotations

from collections.abc import Iterable

from .report import Finding


def format_references(urls: Iterable[str]) -> str:
    """Render reference URLs as markdown links joined with " and "."""
    return " and ".join(f"[here]({url})" for url in urls)


def render_comment(finding: Finding) -> str:
    """Render the review comment body for one finding.

    Severity is rendered verbatim so unknown values still reach the reader.
    """
    return (
        f":warning: trivy found a **{finding.severity}** severity issue from rule `{finding.id}`:\n"
        f"> {finding.message}\n"
        "\n"
        f"More information available {format_references(finding.references)}"
    )
