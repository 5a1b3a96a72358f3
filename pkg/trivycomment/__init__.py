"""Trivy misconfiguration findings as pull request review comments."""

from .config import CommenterConfig, ConfigError, read_pull_request_number
from .orchestrator import (
    ACCEPTED,
    DUPLICATE,
    EXIT_FAILURE,
    EXIT_OK,
    FAILED,
    OUT_OF_DIFF,
    CommentSubmitter,
    ResolvedComment,
    RunResult,
    SubmissionOutcome,
    exit_code,
    submit_findings,
)
from .paths import normalize_working_directory, resolve_path, workspace_prefix
from .render import format_references, render_comment
from .report import Finding, Report, ReportError, ResultGroup, iter_actionable, load_report

__all__ = [
    "ACCEPTED",
    "CommentSubmitter",
    "CommenterConfig",
    "ConfigError",
    "DUPLICATE",
    "EXIT_FAILURE",
    "EXIT_OK",
    "FAILED",
    "Finding",
    "OUT_OF_DIFF",
    "Report",
    "ReportError",
    "ResolvedComment",
    "ResultGroup",
    "RunResult",
    "SubmissionOutcome",
    "exit_code",
    "format_references",
    "iter_actionable",
    "load_report",
    "normalize_working_directory",
    "read_pull_request_number",
    "render_comment",
    "resolve_path",
    "submit_findings",
    "workspace_prefix",
]
