"""Unified diff helpers for anchoring multi-line review comments.

GitHub only accepts a review comment whose line range sits inside one hunk
of the file's patch (the `patch` field from `pulls/{pr}/files`). This module
reads the new-file side of each hunk header.
"""

from __future__ import annotations

import re

_HUNK_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)


def parse_hunks(patch: str | None) -> list[tuple[int, int]]:
    """Return inclusive (first, last) new-file line ranges, one per hunk.

    Hunks that only delete lines have no new-file side and are dropped.
    """
    hunks: list[tuple[int, int]] = []
    for raw in (patch or "").splitlines():
        m = _HUNK_RE.match(raw)
        if not m:
            continue
        start = int(m.group("new_start"))
        count_text = m.group("new_count")
        count = int(count_text) if count_text is not None else 1
        if count <= 0:
            continue
        hunks.append((start, start + count - 1))
    return hunks


def range_in_hunks(hunks: list[tuple[int, int]], start_line: int, end_line: int) -> bool:
    """True when a single hunk covers every line from start_line to end_line."""
    if start_line <= 0 or end_line < start_line:
        return False
    return any(first <= start_line and end_line <= last for first, last in hunks)
