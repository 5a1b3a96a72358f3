"""Per-finding submission loop and the exit policy that follows it.

Every actionable finding gets exactly one submission attempt, in report
order. Outcomes are classified into accepted, duplicate, out-of-diff and
failed; only failures are recorded as errors.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from . import console
from .paths import resolve_path
from .render import render_comment
from .report import Finding, ResultGroup

ACCEPTED = "accepted"
DUPLICATE = "duplicate"
OUT_OF_DIFF = "out_of_diff"
FAILED = "failed"

OUTCOME_STATUSES = (ACCEPTED, DUPLICATE, OUT_OF_DIFF, FAILED)

EXIT_OK = 0
EXIT_FAILURE = 1


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one comment write: a status tag plus a message for failures."""

    status: str
    message: str | None = None

    def __post_init__(self) -> None:
        if self.status not in OUTCOME_STATUSES:
            raise ValueError(f"unknown submission status: {self.status}")
        if self.status == FAILED and not self.message:
            raise ValueError("failed outcome requires a message")

    @classmethod
    def accepted(cls) -> "SubmissionOutcome":
        return cls(ACCEPTED)

    @classmethod
    def duplicate(cls) -> "SubmissionOutcome":
        return cls(DUPLICATE)

    @classmethod
    def out_of_diff(cls) -> "SubmissionOutcome":
        return cls(OUT_OF_DIFF)

    @classmethod
    def failed(cls, message: str) -> "SubmissionOutcome":
        return cls(FAILED, message)


class CommentSubmitter(Protocol):
    def submit(self, file_path: str, body: str, start_line: int, end_line: int) -> SubmissionOutcome:
        ...


@dataclass(frozen=True)
class ResolvedComment:
    """Data class for Resolved Comment."""

    file_path: str
    body: str
    start_line: int
    end_line: int


@dataclass
class RunResult:
    """Outcome totals accumulated over one run."""

    hard_errors: list[str] = field(default_factory=list)
    any_accepted_or_duplicate: bool = False
    submitted: int = 0
    duplicates: int = 0
    skipped: int = 0

    @property
    def attempted(self) -> int:
        return self.submitted + self.duplicates + self.skipped + len(self.hard_errors)

    def record(self, outcome: SubmissionOutcome) -> None:
        """Record."""
        if outcome.status == ACCEPTED:
            self.submitted += 1
            self.any_accepted_or_duplicate = True
        elif outcome.status == DUPLICATE:
            self.duplicates += 1
            self.any_accepted_or_duplicate = True
        elif outcome.status == OUT_OF_DIFF:
            self.skipped += 1
        else:
            self.hard_errors.append(outcome.message or "unknown error")


def build_comment(
    group: ResultGroup,
    finding: Finding,
    *,
    workspace_prefix: str = "",
    working_directory: str = "",
) -> ResolvedComment:
    """Build comment."""
    return ResolvedComment(
        file_path=resolve_path(group.target, workspace_prefix, working_directory),
        body=render_comment(finding),
        start_line=finding.start_line,
        end_line=finding.end_line,
    )


def _submit_one(submitter: CommentSubmitter, comment: ResolvedComment) -> SubmissionOutcome:
    try:
        return submitter.submit(comment.file_path, comment.body, comment.start_line, comment.end_line)
    except Exception as exc:
        # A failing finding must never stop the remaining ones.
        return SubmissionOutcome.failed(str(exc) or exc.__class__.__name__)


def submit_findings(
    pairs: Iterable[tuple[ResultGroup, Finding]],
    submitter: CommentSubmitter,
    *,
    workspace_prefix: str = "",
    working_directory: str = "",
) -> RunResult:
    """Submit one comment per finding, sequentially, and tally the outcomes."""
    result = RunResult()
    for group, finding in pairs:
        comment = build_comment(
            group,
            finding,
            workspace_prefix=workspace_prefix,
            working_directory=working_directory,
        )
        console.info(
            f"Preparing comment for violation of rule {finding.id} in {comment.file_path} "
            f"(lines {comment.start_line} to {comment.end_line})"
        )
        outcome = _submit_one(submitter, comment)
        result.record(outcome)

        if outcome.status == ACCEPTED:
            console.info(f"Comment written for violation of rule {finding.id} in {comment.file_path}")
        elif outcome.status == DUPLICATE:
            console.info("Ignoring - comment already written")
        elif outcome.status == OUT_OF_DIFF:
            console.info("Ignoring - change not part of the current PR")
        else:
            console.warn(f"Failed to write comment for rule {finding.id} in {comment.file_path}: {outcome.message}")
    return result


def exit_code(result: RunResult, *, soft_fail: bool = False) -> int:
    """Map a finished run onto the process exit code.

    Hard errors always fail. Written or already-present comments fail too so
    that merge gates see the findings, unless soft fail is enabled. Anything
    else succeeds.
    """
    if result.hard_errors:
        return EXIT_FAILURE
    if result.any_accepted_or_duplicate and not soft_fail:
        return EXIT_FAILURE
    return EXIT_OK
