#!/usr/bin/env python3
"""Post Trivy misconfiguration findings as pull request review comments.

Usage:
    trivy-pr-commenter [report.json] [--dry-run]

Exit codes:
    0  nothing to report, not a pull request, or soft fail enabled
    1  comment errors, or findings were commented
    2  startup failure (environment, event payload, report, GitHub)
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from collections.abc import Mapping

from . import console
from .config import CommenterConfig, ConfigError, read_pull_request_number
from .github import GitHubError, PullRequestCommenter, describe_gh_failure
from .orchestrator import (
    EXIT_OK,
    CommentSubmitter,
    RunResult,
    SubmissionOutcome,
    exit_code,
    submit_findings,
)
from .report import ReportError, iter_actionable, load_report

DEFAULT_REPORT = "trivy_sample_report.json"
EXIT_STARTUP = 2


class StartupError(RuntimeError):
    """Run cannot start; nothing has been commented."""


class PrintingSubmitter:
    """Prints comments instead of writing them (dry run)."""

    def submit(self, file_path: str, body: str, start_line: int, end_line: int) -> SubmissionOutcome:
        print("--- COMMENT ---")
        print(f"Filename: {file_path}")
        print(f"Comment: {body}")
        print(f"Startline: {start_line} Endline: {end_line}")
        print("--- END COMMENT ---")
        return SubmissionOutcome.accepted()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trivy-pr-commenter",
        description="Comment Trivy misconfigurations on the lines of a pull request.",
    )
    parser.add_argument(
        "report",
        nargs="?",
        default=DEFAULT_REPORT,
        help=f"Path to the Trivy JSON report (default: {DEFAULT_REPORT})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print comments instead of posting them; no GitHub access needed.",
    )
    return parser


def connect_commenter(config: CommenterConfig, pr_number: int) -> PullRequestCommenter:
    """Connect commenter."""
    try:
        return PullRequestCommenter.connect(
            config.repository,
            pr_number,
            token=config.token,
            hostname=config.hostname,
        )
    except (GitHubError, subprocess.CalledProcessError) as exc:
        raise StartupError(f"failed to create commenter: {describe_gh_failure(exc)}") from exc


def report_outcome(result: RunResult, *, soft_fail: bool) -> int:
    """Print the run summary and return the exit code."""
    if result.hard_errors:
        console.error(f"There were {len(result.hard_errors)} errors:")
        for message in result.hard_errors:
            console.info(message)
    console.info(
        f"Processed {result.attempted} findings: {result.submitted} commented, "
        f"{result.duplicates} already commented, {result.skipped} outside the diff, "
        f"{len(result.hard_errors)} failed"
    )
    code = exit_code(result, soft_fail=soft_fail)
    if code != EXIT_OK and not result.hard_errors:
        console.notice(
            "Trivy findings were commented on this pull request; "
            "set INPUT_SOFT_FAIL_COMMENTER=true to pass anyway."
        )
    return code


def run(args: argparse.Namespace, environ: Mapping[str, str]) -> int:
    """Run the commenter and return the exit code.

    Raises:
        StartupError: Anything that stops the run before the first comment.
    """
    console.info("Starting the github commenter")
    try:
        config = CommenterConfig.from_env(environ, dry_run=args.dry_run)
    except ConfigError as exc:
        raise StartupError(str(exc)) from exc

    submitter: CommentSubmitter
    pr_number: int | None = None
    if not args.dry_run:
        console.info(f"Working in repository {config.repo}")
        try:
            pr_number = read_pull_request_number(config.event_path)
        except ConfigError as exc:
            raise StartupError(str(exc)) from exc
        if pr_number is None:
            console.info("Not a PR, nothing to comment on, exiting")
            return EXIT_OK
        console.info(f"Working in PR {pr_number}")

    try:
        report = load_report(args.report)
    except ReportError as exc:
        raise StartupError(f"failed to load trivy report: {exc}") from exc
    if not report.results:
        console.info("No results found in trivy report, exiting")
        return EXIT_OK
    console.info(f"Trivy found {len(report.results)} results")

    if pr_number is None:
        submitter = PrintingSubmitter()
    else:
        submitter = connect_commenter(config, pr_number)

    console.info(f"Working in GITHUB_WORKSPACE {config.workspace_prefix}")
    result = submit_findings(
        iter_actionable(report),
        submitter,
        workspace_prefix=config.workspace_prefix,
        working_directory=config.working_directory,
    )
    return report_outcome(result, soft_fail=config.soft_fail)


def main(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Main."""
    args = build_parser().parse_args(argv)
    try:
        return run(args, os.environ if environ is None else environ)
    except StartupError as exc:
        print(f"trivy-pr-commenter: {exc}", file=sys.stderr)
        return EXIT_STARTUP


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
