"""Tests for core/builder.py."""

from __future__ import annotations

from rich.console import Console

from securescore.core.builder import build_item, build_report, describe_current_value, strip_markup
from securescore.models.control import ControlDefinition, TenantControlScore
from securescore.models.report import ComplianceStatus, RiskLevel

MFA_URL = "https://entra.microsoft.com/#view/Microsoft_AAD_ConditionalAccess/ConditionalAccessBlade/~/Policies"
PURVIEW_URL = "https://purview.microsoft.com/"


class TestStripMarkup:
    def test_removes_tags_and_entities(self):
        assert strip_markup("<p>Use <b>MFA</b> &amp; SSPR</p>") == "Use MFA & SSPR"

    def test_line_breaks_become_spaces(self):
        assert strip_markup("one<br/>two<br>three") == "one two three"

    def test_empty(self):
        assert strip_markup("") == ""


class TestDescribeCurrentValue:
    def test_not_scored(self):
        assert describe_current_value(ComplianceStatus.NOT_APPLICABLE, None, 10) == "Not scored in this tenant"

    def test_partial(self):
        achieved = TenantControlScore(control_id="A", score=4.5)
        assert describe_current_value(ComplianceStatus.NON_COMPLIANT, achieved, 9) == "Partially implemented (4.5/9 points)"

    def test_zero_with_description(self):
        achieved = TenantControlScore(control_id="A", score=0, description="<b>0</b> of 12 users")
        text = describe_current_value(ComplianceStatus.NON_COMPLIANT, achieved, 10)
        assert text == "Not implemented (0/10 points). 0 of 12 users"


class TestBuildItem:
    def test_mfa_control_scored_zero(self, normalizer, sample_controls, sample_scores):
        item = build_item(sample_controls[0], sample_scores, normalizer, total_max_score=50)
        assert item.status == ComplianceStatus.NON_COMPLIANT
        assert item.risk == RiskLevel.HIGH
        assert item.action_url == MFA_URL
        assert item.reference_url == "https://learn.microsoft.com/x"
        assert item.score_impact == "+20%"
        assert item.current_value == "Not implemented (0/10 points)"
        assert item.proposed_value == "Fully implemented (10/10 points)"
        assert item.justification == "Mitigates: Account Breach. Enable MFA for all admins."

    def test_missing_category_defaults(self, normalizer):
        control = ControlDefinition(id="A", title="T", max_score=1)
        item = build_item(control, {}, normalizer)
        assert item.category == "Uncategorized"
        assert item.score_impact == "+1 points"


class TestBuildReport:
    def test_processes_in_order_and_skips_invalid(self, normalizer, sample_controls, sample_scores):
        report = build_report(sample_controls, sample_scores, normalizer, total_max_score=50)

        assert [i.control_id for i in report.items] == ["MFA1", "SafeAtt", "Audit.Log"]
        s = report.summary
        assert s.total_checks == 3
        assert s.skipped == 1
        assert (s.compliant, s.non_compliant, s.not_applicable) == (1, 1, 1)
        assert (s.high_risk, s.medium_risk, s.low_risk) == (1, 1, 1)

    def test_urls_resolved(self, normalizer, sample_controls, sample_scores):
        report = build_report(sample_controls, sample_scores, normalizer)
        urls = {i.control_id: i.action_url for i in report.items}
        assert urls["SafeAtt"] == "https://security.microsoft.com/safeattachment"
        # Non-HTTP input still reported, routed by keyword
        assert urls["Audit.Log"] == PURVIEW_URL

    def test_non_http_without_fallback_kept_with_empty_link(self, normalizer):
        control = ControlDefinition(id="X1", title="Rename the printer", max_score=1, action_url="n/a")
        report = build_report([control], {}, normalizer)
        assert report.summary.total_checks == 1
        assert report.items[0].action_url == ""

    def test_deprecated_excluded_by_default(self, normalizer):
        controls = [
            ControlDefinition(id="Old", title="Old control", max_score=1, deprecated=True),
            ControlDefinition(id="New", title="New control", max_score=1),
        ]
        assert [i.control_id for i in build_report(controls, {}, normalizer).items] == ["New"]
        included = build_report(controls, {}, normalizer, include_deprecated=True)
        assert [i.control_id for i in included.items] == ["Old", "New"]

    def test_tenant_id_flows_to_urls(self, normalizer, sample_controls, sample_scores):
        report = build_report(sample_controls[:1], sample_scores, normalizer, tenant_id="abc-123")
        assert "tid=abc-123" in report.items[0].action_url

    def test_skip_is_logged(self, normalizer, sample_controls, sample_scores):
        console = Console(record=True, width=200)
        build_report(sample_controls, sample_scores, normalizer, console=console)
        output = console.export_text()
        assert "SKIP" in output
        assert "bad id!" in output
        assert "non-HTTP action URL" in output
