"""Typed model for Trivy JSON reports.

Only the fields needed to anchor misconfiguration comments are decoded.
Missing or null fields decode to empty values; Trivy omits them freely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from . import console

CONFIG_CLASS = "config"
TERRAFORM_TYPE = "terraform"


class ReportError(RuntimeError):
    """Report file could not be read or decoded."""


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_list(value: Any, ctx: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ReportError(f"{ctx}: expected list")
    return value


def _as_mapping(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ReportError(f"{ctx}: expected object")
    return value


@dataclass(frozen=True)
class Finding:
    """A single misconfiguration with the lines that caused it."""

    id: str
    severity: str
    message: str
    references: tuple[str, ...]
    start_line: int
    end_line: int

    @classmethod
    def from_dict(cls, raw: dict[str, Any], ctx: str = "Misconfiguration") -> "Finding":
        """From dict."""
        cause = _as_mapping(raw.get("CauseMetadata"), f"{ctx}.CauseMetadata")
        start_line = _as_int(cause.get("StartLine"))
        end_line = _as_int(cause.get("EndLine"))
        references = tuple(
            _as_str(ref) for ref in _as_list(raw.get("References"), f"{ctx}.References") if ref
        )
        return cls(
            id=_as_str(raw.get("ID")),
            severity=_as_str(raw.get("Severity")),
            message=_as_str(raw.get("Message")),
            references=references,
            start_line=start_line,
            end_line=max(end_line, start_line),
        )


@dataclass(frozen=True)
class ResultGroup:
    """One scanned target and the misconfigurations found in it."""

    target: str
    result_class: str
    kind: str
    findings: tuple[Finding, ...] = ()

    def skip_reason(self) -> str | None:
        """Why this group gets no comments, or None when it is actionable."""
        if self.result_class != CONFIG_CLASS and self.kind != TERRAFORM_TYPE:
            return "not a config/terraform result"
        if not self.findings:
            return "no misconfigurations"
        return None

    @property
    def is_actionable(self) -> bool:
        return self.skip_reason() is None

    def describe(self) -> str:
        return f"{self.target} / {self.kind} / {self.result_class}"

    @classmethod
    def from_dict(cls, raw: dict[str, Any], ctx: str = "Result") -> "ResultGroup":
        """From dict."""
        findings = []
        for idx, item in enumerate(_as_list(raw.get("Misconfigurations"), f"{ctx}.Misconfigurations")):
            item_ctx = f"{ctx}.Misconfigurations[{idx}]"
            findings.append(Finding.from_dict(_as_mapping(item, item_ctx), item_ctx))
        return cls(
            target=_as_str(raw.get("Target")),
            result_class=_as_str(raw.get("Class")),
            kind=_as_str(raw.get("Type")),
            findings=tuple(findings),
        )


@dataclass(frozen=True)
class Report:
    """Data class for Report."""

    results: tuple[ResultGroup, ...] = ()

    @classmethod
    def from_dict(cls, raw: Any) -> "Report":
        """From dict."""
        data = _as_mapping(raw, "report")
        groups = []
        for idx, item in enumerate(_as_list(data.get("Results"), "Results")):
            ctx = f"Results[{idx}]"
            groups.append(ResultGroup.from_dict(_as_mapping(item, ctx), ctx))
        return cls(results=tuple(groups))


def load_report(path: str | Path) -> Report:
    """Read and decode a Trivy JSON report.

    Raises:
        ReportError: The file is unreadable, not JSON, or not shaped like a report.
    """
    report_path = Path(path)
    console.info(f"Loading trivy report from {report_path}")
    try:
        text = report_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ReportError(f"unable to read {report_path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportError(f"invalid JSON in {report_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ReportError(f"{report_path}: expected a JSON object")

    report = Report.from_dict(data)
    console.info("Trivy report loaded successfully")
    return report


def iter_actionable(report: Report) -> Iterator[tuple[ResultGroup, Finding]]:
    """Yield (group, finding) for every finding in a config/terraform group, in report order."""
    for group in report.results:
        reason = group.skip_reason()
        if reason is not None:
            console.notice(f"{group.describe()} - {reason}; skipping")
            continue
        for finding in group.findings:
            yield group, finding
