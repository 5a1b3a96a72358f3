"""Tests for the Trivy report model and the actionable filter."""
from __future__ import annotations

import json

import pytest

from pkg.trivycomment.report import (
    Finding,
    Report,
    ReportError,
    ResultGroup,
    iter_actionable,
    load_report,
)

from conftest import make_finding, make_group


class TestFromDict:
    def test_decodes_misconfiguration_fields(self):
        report = Report.from_dict(
            {
                "Results": [
                    {
                        "Target": "main.tf",
                        "Class": "config",
                        "Type": "terraform",
                        "Misconfigurations": [
                            {
                                "ID": "AVD-AWS-0086",
                                "Severity": "HIGH",
                                "Message": "msg",
                                "References": ["https://a", "https://b"],
                                "CauseMetadata": {"StartLine": 3, "EndLine": 7},
                            }
                        ],
                    }
                ]
            }
        )
        group = report.results[0]
        assert group.target == "main.tf"
        assert group.result_class == "config"
        assert group.kind == "terraform"
        assert group.findings == (
            Finding(
                id="AVD-AWS-0086",
                severity="HIGH",
                message="msg",
                references=("https://a", "https://b"),
                start_line=3,
                end_line=7,
            ),
        )

    def test_null_results_is_empty_report(self):
        assert Report.from_dict({"Results": None}).results == ()
        assert Report.from_dict({}).results == ()

    def test_null_misconfigurations_is_empty_group(self):
        report = Report.from_dict({"Results": [{"Target": "Dockerfile", "Misconfigurations": None}]})
        assert report.results[0].findings == ()

    def test_end_line_never_before_start_line(self):
        finding = Finding.from_dict({"ID": "X", "CauseMetadata": {"StartLine": 9, "EndLine": 0}})
        assert finding.start_line == 9
        assert finding.end_line == 9

    def test_missing_cause_metadata_gives_zero_lines(self):
        finding = Finding.from_dict({"ID": "X"})
        assert (finding.start_line, finding.end_line) == (0, 0)
        assert finding.references == ()

    def test_results_must_be_a_list(self):
        with pytest.raises(ReportError, match="Results: expected list"):
            Report.from_dict({"Results": {"Target": "x"}})

    def test_misconfiguration_must_be_an_object(self):
        with pytest.raises(ReportError, match=r"Results\[0\]\.Misconfigurations\[1\]"):
            Report.from_dict({"Results": [{"Misconfigurations": [{}, "oops"]}]})


class TestLoadReport:
    def test_loads_fixture(self, sample_report_path):
        report = load_report(sample_report_path)
        assert [g.target for g in report.results] == [
            "/github/workspace/terraform/main.tf",
            "requirements.txt",
            "Dockerfile",
        ]
        assert len(report.results[0].findings) == 2

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ReportError, match="unable to read"):
            load_report(tmp_path / "nope.json")

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "report.json"
        path.write_text("{not json")
        with pytest.raises(ReportError, match="invalid JSON"):
            load_report(path)

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / "report.json"
        path.write_text(json.dumps([1, 2]))
        with pytest.raises(ReportError, match="expected a JSON object"):
            load_report(path)


class TestActionable:
    @pytest.mark.parametrize(
        ("result_class", "kind", "expected"),
        [
            ("config", "terraform", True),
            ("config", "dockerfile", True),
            ("lang-pkgs", "terraform", True),
            ("lang-pkgs", "pip", False),
            ("", "", False),
        ],
    )
    def test_class_or_kind_selects_group(self, result_class, kind, expected):
        group = make_group(result_class=result_class, kind=kind)
        assert group.is_actionable is expected
        assert bool(list(iter_actionable(Report(results=(group,))))) is expected

    @pytest.mark.parametrize(("result_class", "kind"), [("config", "x"), ("x", "terraform"), ("config", "terraform")])
    def test_empty_groups_never_emit(self, result_class, kind):
        group = make_group(findings=[], result_class=result_class, kind=kind)
        assert list(iter_actionable(Report(results=(group,)))) == []

    def test_non_config_groups_never_emit_regardless_of_findings(self):
        findings = [make_finding(id=f"R{i}") for i in range(5)]
        group = make_group(findings=findings, result_class="secret", kind="pip")
        assert list(iter_actionable(Report(results=(group,)))) == []

    def test_preserves_group_then_finding_order(self):
        first = make_group(
            findings=[make_finding(id="A1"), make_finding(id="A2")], target="a.tf"
        )
        skipped = make_group(findings=[make_finding(id="S1")], result_class="lang-pkgs", kind="npm")
        second = make_group(findings=[make_finding(id="B1")], target="b.tf")
        pairs = list(iter_actionable(Report(results=(first, skipped, second))))
        assert [(g.target, f.id) for g, f in pairs] == [("a.tf", "A1"), ("a.tf", "A2"), ("b.tf", "B1")]

    def test_skipped_groups_are_logged(self, capsys):
        report = Report(
            results=(
                ResultGroup(target="req.txt", result_class="lang-pkgs", kind="pip"),
                ResultGroup(target="Dockerfile", result_class="config", kind="dockerfile"),
            )
        )
        assert list(iter_actionable(report)) == []
        err = capsys.readouterr().err
        assert "::notice::req.txt / pip / lang-pkgs - not a config/terraform result; skipping" in err
        assert "::notice::Dockerfile / dockerfile / config - no misconfigurations; skipping" in err

    def test_filter_is_lazy(self):
        report = Report(results=(make_group(),))
        pairs = iter_actionable(report)
        assert not isinstance(pairs, list)
        group, finding = next(pairs)
        assert finding.id == "AVD-AWS-0086"
