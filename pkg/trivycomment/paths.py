"""Map scanner target paths onto paths inside the pull request tree.

Pure string handling; nothing here touches the filesystem.
"""

from __future__ import annotations


def _strip_dot_slash(path: str) -> str:
    if path.startswith("./"):
        return path[2:]
    return path


def workspace_prefix(root: str | None) -> str:
    """Workspace root with exactly one trailing separator, or "" when unset."""
    text = (root or "").strip()
    if not text:
        return ""
    return text.rstrip("/") + "/"


def normalize_working_directory(value: str | None) -> str:
    """Drop a leading ./ and keep exactly one trailing separator ("" stays "")."""
    text = _strip_dot_slash((value or "").strip())
    if not text:
        return ""
    return text.rstrip("/") + "/"


def resolve_path(target: str, workspace_prefix: str = "", working_directory: str = "") -> str:
    """Resolve a reported target to the path a review comment is anchored on.

    Trivy reports targets relative to the directory it scanned, or absolute
    within the runner workspace. The workspace prefix is removed, the working
    directory is prepended, and a leading ./ is dropped.
    """
    path = target or ""
    if workspace_prefix and path.startswith(workspace_prefix):
        path = path[len(workspace_prefix):]
    return _strip_dot_slash(working_directory + path)
