"""GitHub pull request review comments via the gh CLI.

`PullRequestCommenter.connect` loads the PR head commit, changed files and
existing review comments once. `submit` then classifies each comment as
out-of-diff, duplicate, or writes it.
"""
from __future__ import annotations

import json
import os
import random
import subprocess
import sys
import tempfile
import time
from collections.abc import Mapping

from .diff_hunks import parse_hunks, range_in_hunks
from .orchestrator import SubmissionOutcome


class GitHubError(Exception):
    """Base class for GitHub API failures."""


class CommentPermissionError(GitHubError):
    """Token lacks pull-requests: write permission."""


class TransientGitHubError(GitHubError):
    """GitHub API returned a transient error (5xx)."""


class GitHubResponseError(GitHubError):
    """GitHub API returned something that is not the expected JSON."""


class GitHubUnavailableError(GitHubError):
    """The gh CLI is missing or cannot be executed."""


def _permission_message(args: list[str]) -> str:
    if "-X" in args:
        action, scope = "post review comment", "write"
    else:
        action, scope = "read pull request", "read"
    return (
        f"Unable to {action}: token lacks pull-requests: {scope} permission.\n"
        "Add this to your workflow:\n"
        "permissions:\n"
        "  contents: read\n"
        "  pull-requests: write"
    )


def _is_transient_error(stderr: str) -> bool:
    """Check if error is a transient GitHub API error (5xx)."""
    transient_codes = ("502", "503", "504")
    lower_stderr = stderr.lower()
    # Handle both gh CLI format "(http 503)" and raw "HTTP 503" formats
    return any(
        f"(http {code})" in lower_stderr or f"http {code}" in lower_stderr
        for code in transient_codes
    )


def _run_gh(
    args: list[str],
    *,
    max_retries: int = 3,
    base_delay: float = 1.0,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a gh CLI command with retry logic for transient errors.

    Args:
        args: Arguments to pass to gh CLI
        max_retries: Maximum number of retry attempts for transient errors
        base_delay: Base delay in seconds between retries (uses exponential backoff)
        env: Environment for the gh process (defaults to the current one)

    Returns:
        CompletedProcess result from the gh command

    Raises:
        GitHubUnavailableError: The gh executable could not be started
        CommentPermissionError: Token lacks pull-requests permission
        TransientGitHubError: GitHub API returned 5xx after all retries
        subprocess.CalledProcessError: Other gh CLI failures
    """
    for attempt in range(max_retries):
        try:
            result = subprocess.run(
                ["gh", *args],
                capture_output=True,
                text=True,
                check=False,
                env=dict(env) if env is not None else None,
            )
        except OSError as exc:
            raise GitHubUnavailableError(f"unable to run the gh CLI: {exc}") from exc

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").lower()

        # Check for permission errors (don't retry these)
        if any(s in stderr for s in ("403", "resource not accessible", "insufficient")):
            raise CommentPermissionError(_permission_message(args))

        if _is_transient_error(result.stderr or ""):
            if attempt < max_retries - 1:
                # Exponential backoff with jitter: 1s, 2s, 4s + random jitter
                delay = base_delay * (2 ** attempt) + random.uniform(0, 0.5)
                print(
                    f"::warning::GitHub API error (attempt {attempt + 1}/{max_retries}), "
                    f"retrying in {delay:.1f}s...",
                    file=sys.stderr,
                )
                time.sleep(delay)
                continue
            raise TransientGitHubError(
                f"GitHub API returned transient error after {max_retries} attempts: "
                f"{result.stderr}"
            )

        raise subprocess.CalledProcessError(
            result.returncode, result.args, result.stdout, result.stderr
        )

    raise RuntimeError("_run_gh retry loop exited unexpectedly")


def gh_environment(token: str, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment that authenticates gh with the action token."""
    env = dict(os.environ if base is None else base)
    if token:
        env["GH_TOKEN"] = token
        env["GH_ENTERPRISE_TOKEN"] = token
    return env


def describe_gh_failure(exc: BaseException) -> str:
    """One-line description of a gh failure for logs and error lists."""
    if isinstance(exc, subprocess.CalledProcessError):
        detail = (exc.stderr or exc.stdout or "").strip()
        return detail or f"gh exited with status {exc.returncode}"
    return str(exc) or exc.__class__.__name__


class PullRequestCommenter:
    """Writes multi-line review comments on one pull request."""

    def __init__(
        self,
        repo: str,
        pr_number: int,
        *,
        head_sha: str,
        files: dict[str, list[tuple[int, int]]],
        comments: list[dict] | None = None,
        hostname: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.repo = repo
        self.pr_number = pr_number
        self.head_sha = head_sha
        self.hostname = hostname
        self._files = files
        self._comments = list(comments or [])
        self._env = env

    @classmethod
    def connect(
        cls,
        repo: str,
        pr_number: int,
        *,
        token: str,
        hostname: str | None = None,
    ) -> "PullRequestCommenter":
        """Load PR head, changed files and existing review comments.

        Raises:
            GitHubError: The API could not be reached or answered unexpectedly.
            subprocess.CalledProcessError: Other gh CLI failures.
        """
        env = gh_environment(token)
        pull = _api_json(_api_args(f"repos/{repo}/pulls/{pr_number}", hostname), env)
        if not isinstance(pull, dict):
            raise GitHubResponseError(f"unexpected pull request payload for {repo}#{pr_number}")
        head = pull.get("head")
        head_sha = str(head.get("sha") or "").strip() if isinstance(head, dict) else ""
        if not head_sha:
            raise GitHubResponseError(f"pull request {repo}#{pr_number} has no head sha")

        files: dict[str, list[tuple[int, int]]] = {}
        for item in _paginate(f"repos/{repo}/pulls/{pr_number}/files?per_page=100", hostname, env):
            filename = item.get("filename")
            if not isinstance(filename, str) or not filename.strip():
                continue
            patch = item.get("patch")
            files[filename.strip()] = parse_hunks(patch if isinstance(patch, str) else "")

        comments = _paginate(f"repos/{repo}/pulls/{pr_number}/comments?per_page=100", hostname, env)
        return cls(
            repo,
            pr_number,
            head_sha=head_sha,
            files=files,
            comments=comments,
            hostname=hostname,
            env=env,
        )

    def is_in_diff(self, file_path: str, start_line: int, end_line: int) -> bool:
        hunks = self._files.get(file_path)
        if hunks is None:
            return False
        return range_in_hunks(hunks, start_line, end_line)

    def is_duplicate(self, file_path: str, body: str, end_line: int) -> bool:
        for comment in self._comments:
            if comment.get("path") != file_path or comment.get("body") != body:
                continue
            line = comment.get("line")
            if line is None:
                line = comment.get("original_line")
            if line == end_line:
                return True
        return False

    def submit(self, file_path: str, body: str, start_line: int, end_line: int) -> SubmissionOutcome:
        """Write one review comment spanning start_line..end_line of file_path."""
        if not self.is_in_diff(file_path, start_line, end_line):
            return SubmissionOutcome.out_of_diff()
        if self.is_duplicate(file_path, body, end_line):
            return SubmissionOutcome.duplicate()

        payload: dict[str, object] = {
            "body": body,
            "commit_id": self.head_sha,
            "path": file_path,
            "line": end_line,
            "side": "RIGHT",
        }
        if start_line < end_line:
            payload["start_line"] = start_line
            payload["start_side"] = "RIGHT"

        try:
            created = self._post_comment(payload)
        except (GitHubError, subprocess.CalledProcessError) as exc:
            return SubmissionOutcome.failed(
                f"{file_path}:{start_line}-{end_line}: {describe_gh_failure(exc)}"
            )

        # Later comments in this run must see this one for duplicate detection.
        self._comments.append(
            created or {"path": file_path, "body": body, "line": end_line}
        )
        return SubmissionOutcome.accepted()

    def _post_comment(self, payload: dict[str, object]) -> dict:
        with tempfile.NamedTemporaryFile("w", encoding="utf-8", suffix=".json", delete=False) as handle:
            json.dump(payload, handle)
            tmp_path = handle.name
        try:
            args = _api_args(f"repos/{self.repo}/pulls/{self.pr_number}/comments", self.hostname)
            data = _api_json([*args, "-X", "POST", "--input", tmp_path], self._env)
        finally:
            os.unlink(tmp_path)
        return data if isinstance(data, dict) else {}


def _api_args(endpoint: str, hostname: str | None) -> list[str]:
    args = ["api"]
    if hostname:
        args.extend(["--hostname", hostname])
    args.append(endpoint)
    return args


def _api_json(args: list[str], env: Mapping[str, str] | None) -> object:
    result = _run_gh(args, env=env)
    try:
        return json.loads(result.stdout or "null")
    except json.JSONDecodeError as exc:
        raise GitHubResponseError(f"invalid JSON from gh {' '.join(args)}: {exc}") from exc


def _paginate(endpoint: str, hostname: str | None, env: Mapping[str, str] | None) -> list[dict]:
    # --paginate without --slurp does not produce valid JSON.
    args = _api_args(endpoint, hostname)
    pages = _api_json([args[0], "--paginate", "--slurp", *args[1:]], env)
    if not isinstance(pages, list):
        raise GitHubResponseError(f"unexpected paginated payload for {endpoint}")
    items: list[dict] = []
    for page in pages:
        if isinstance(page, list):
            items.extend(item for item in page if isinstance(item, dict))
    return items
