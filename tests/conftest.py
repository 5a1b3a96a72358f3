"""Shared fixtures for trivycomment tests."""
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Make `pkg.trivycomment` importable without an install.
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from pkg.trivycomment.orchestrator import SubmissionOutcome  # noqa: E402
from pkg.trivycomment.report import Finding, ResultGroup  # noqa: E402


class FakeSubmitter:
    """Returns scripted outcomes in order and records every call."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []

    def submit(self, file_path, body, start_line, end_line):
        self.calls.append((file_path, body, start_line, end_line))
        if not self.outcomes:
            return SubmissionOutcome.accepted()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_finding(**overrides) -> Finding:
    values = {
        "id": "AVD-AWS-0086",
        "severity": "HIGH",
        "message": "No public access block so not blocking public acls",
        "references": ("https://avd.aquasec.com/misconfig/avd-aws-0086",),
        "start_line": 3,
        "end_line": 5,
    }
    values.update(overrides)
    return Finding(**values)


def make_group(findings=None, **overrides) -> ResultGroup:
    values = {
        "target": "main.tf",
        "result_class": "config",
        "kind": "terraform",
        "findings": tuple(findings if findings is not None else [make_finding()]),
    }
    values.update(overrides)
    return ResultGroup(**values)


@pytest.fixture
def sample_report_path() -> Path:
    return FIXTURES_DIR / "trivy_report.json"
