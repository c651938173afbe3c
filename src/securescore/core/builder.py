"""Per-control pipeline: validate, classify, resolve URL, assemble."""

from __future__ import annotations

import html
import re
from typing import Iterable, Mapping, Optional

from rich.console import Console
from rich.markup import escape

from ..models.control import ControlDefinition, TenantControlScore
from ..models.report import ComplianceStatus, ReportData, ReportItem
from .assembler import add_item, new_report, record_skipped
from .classifier import (
    classify_compliance,
    classify_risk,
    format_number,
    has_http_action_url,
    score_impact,
    validation_error,
)
from .normalizer import UrlNormalizer

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def strip_markup(text: str) -> str:
    """Remediation text arrives as HTML fragments; reduce it to plain text."""
    if not text:
        return ""
    text = re.sub(r"<br\s*/?>|</p>|</li>", " ", text, flags=re.IGNORECASE)
    text = html.unescape(_TAG_RE.sub("", text))
    return _WS_RE.sub(" ", text).strip()


def describe_current_value(
    status: ComplianceStatus,
    achieved: Optional[TenantControlScore],
    max_score: float,
) -> str:
    if status == ComplianceStatus.NOT_APPLICABLE or achieved is None:
        return "Not scored in this tenant"

    points = f"{format_number(achieved.score)}/{format_number(max_score)} points"
    if status == ComplianceStatus.COMPLIANT:
        text = f"Fully implemented ({points})"
    elif achieved.score > 0:
        text = f"Partially implemented ({points})"
    else:
        text = f"Not implemented ({points})"

    description = strip_markup(achieved.description)
    if description:
        text = f"{text}. {description}"
    return text


def describe_justification(control: ControlDefinition) -> str:
    parts: list[str] = []
    threats = [t for t in control.threats if t]
    if threats:
        parts.append(f"Mitigates: {', '.join(threats)}.")
    remediation = strip_markup(control.remediation)
    if remediation:
        parts.append(remediation)
    return " ".join(parts)


def reference_url(control: ControlDefinition) -> str:
    """The control's original link, kept for reference when it is HTTP."""
    return control.action_url.strip() if has_http_action_url(control) else ""


def build_item(
    control: ControlDefinition,
    scores: Mapping[str, TenantControlScore],
    normalizer: UrlNormalizer,
    tenant_id: str = "",
    total_max_score: float = 0,
) -> ReportItem:
    """Classify a validated control and turn it into a report item."""
    max_score = control.max_score or 0
    status = classify_compliance(control.id, scores, max_score)
    risk = classify_risk(max_score, control.user_impact)

    return ReportItem(
        control_id=control.id,
        category=control.category or "Uncategorized",
        setting_name=control.title.strip(),
        current_value=describe_current_value(status, scores.get(control.id), max_score),
        proposed_value=f"Fully implemented ({format_number(max_score)}/{format_number(max_score)} points)",
        justification=describe_justification(control),
        risk=risk,
        status=status,
        score_impact=score_impact(max_score, total_max_score),
        reference_url=reference_url(control),
        action_url=normalizer.resolve(control.action_url, control.title, tenant_id),
    )


def build_report(
    controls: Iterable[ControlDefinition],
    scores: Mapping[str, TenantControlScore],
    normalizer: UrlNormalizer,
    tenant_id: str = "",
    total_max_score: float = 0,
    include_deprecated: bool = False,
    console: Optional[Console] = None,
) -> ReportData:
    """Process controls in upstream order into a ReportData aggregate.

    Invalid controls are skipped and counted; everything else propagates.
    """
    report = new_report()

    for control in controls:
        if control.deprecated and not include_deprecated:
            continue

        reason = validation_error(control)
        if reason:
            record_skipped(report)
            if console:
                console.print(f"  [yellow]SKIP[/yellow] {escape(control.id or '<no id>')}: {escape(reason)}")
            continue

        if console and control.action_url and not has_http_action_url(control):
            console.print(f"  [dim]INFO {escape(control.id)}: non-HTTP action URL {escape(repr(control.action_url))}[/dim]")

        add_item(report, build_item(control, scores, normalizer, tenant_id, total_max_score))

    return report
