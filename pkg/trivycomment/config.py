"""Runtime configuration collected once from the Actions environment."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from .paths import normalize_working_directory, workspace_prefix

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_EVENT_PATH = "/github/workflow/event.json"


class ConfigError(RuntimeError):
    """Environment is missing or has malformed required values."""


def _env_str(environ: Mapping[str, str], name: str) -> str:
    return str(environ.get(name) or "").strip()


def _parse_repository(value: str) -> tuple[str, str]:
    parts = value.split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ConfigError(
            f"unexpected value for GITHUB_REPOSITORY. Expected <organisation/name>, found {value!r}"
        )
    return parts[0].strip(), parts[1].strip()


def _enterprise_hostname(api_url: str) -> str | None:
    """Hostname to pass to gh for GitHub Enterprise, None for github.com."""
    if not api_url or api_url.rstrip("/") == DEFAULT_API_URL:
        return None
    parsed = urlparse(api_url)
    if (parsed.scheme or "").lower() not in {"http", "https"} or not parsed.hostname:
        raise ConfigError(f"GITHUB_API_URL is not a valid URL: {api_url!r}")
    return parsed.hostname


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


@dataclass(frozen=True)
class CommenterConfig:
    """Everything the run needs from the environment."""

    token: str
    owner: str
    repo: str
    api_url: str = DEFAULT_API_URL
    hostname: str | None = None
    workspace_prefix: str = ""
    working_directory: str = ""
    soft_fail: bool = False
    event_path: str = DEFAULT_EVENT_PATH

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str], *, dry_run: bool = False) -> "CommenterConfig":
        """Build config from environment variables.

        Token and repository are only optional in dry-run mode, where nothing
        is sent to GitHub.

        Raises:
            ConfigError: A required value is missing or malformed.
        """
        token = _env_str(environ, "INPUT_GITHUB_TOKEN")
        if not token and not dry_run:
            raise ConfigError("the INPUT_GITHUB_TOKEN has not been set")

        repository = _env_str(environ, "GITHUB_REPOSITORY")
        if repository or not dry_run:
            owner, repo = _parse_repository(repository)
        else:
            owner, repo = "", ""

        api_url = _env_str(environ, "GITHUB_API_URL") or DEFAULT_API_URL

        return cls(
            token=token,
            owner=owner,
            repo=repo,
            api_url=api_url,
            hostname=_enterprise_hostname(api_url),
            workspace_prefix=workspace_prefix(environ.get("GITHUB_WORKSPACE")),
            working_directory=normalize_working_directory(environ.get("INPUT_WORKING_DIRECTORY")),
            soft_fail=_parse_bool(_env_str(environ, "INPUT_SOFT_FAIL_COMMENTER")),
            event_path=_env_str(environ, "GITHUB_EVENT_PATH") or DEFAULT_EVENT_PATH,
        )


def _coerce_pr_number(value: Any) -> int | None:
    number: int | None = None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    if number is None or number <= 0:
        return None
    return number


def read_pull_request_number(event_path: str | Path) -> int | None:
    """Return the PR number from a workflow event payload, or None when not a PR.

    Raises:
        ConfigError: The payload file cannot be read.
    """
    path = Path(event_path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"GitHub event payload not found in {path}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return _coerce_pr_number(payload.get("number"))
