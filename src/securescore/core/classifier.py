"""Compliance status, risk tier and data-quality rules for Secure Score controls."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from ..models.control import ControlDefinition, TenantControlScore
from ..models.report import ComplianceStatus, RiskLevel

CONTROL_ID_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

HIGH_RISK_MIN_SCORE = 7
MEDIUM_RISK_MIN_SCORE = 4


def classify_compliance(
    control_id: str,
    achieved_scores: Mapping[str, TenantControlScore],
    max_score: Optional[float],
) -> ComplianceStatus:
    """Classify a control against the tenant's achieved scores.

    - NotApplicable: control is not scored in this tenant (e.g. licensing)
    - Compliant: full score achieved
    - NonCompliant: anything less, partial credit included
    """
    entry = achieved_scores.get(control_id)
    if entry is None:
        return ComplianceStatus.NOT_APPLICABLE
    if entry.score == (max_score or 0):
        return ComplianceStatus.COMPLIANT
    return ComplianceStatus.NON_COMPLIANT


def classify_risk(max_score: Optional[float], user_impact: Optional[str]) -> RiskLevel:
    """Risk tier from the control's weight and its user impact rating."""
    score = max_score or 0
    impact = (user_impact or "").strip().lower()

    if score >= HIGH_RISK_MIN_SCORE or impact == "high":
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_MIN_SCORE or impact == "medium":
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def format_number(value: float) -> str:
    """Render 5.0 as '5' and 3.3333 as '3.3333'."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.10g}"


def score_impact(control_max_score: Optional[float], total_max_score: Optional[float]) -> str:
    """Share of the tenant's maximum Secure Score a control is worth."""
    control_max = control_max_score or 0
    if total_max_score and total_max_score > 0:
        percentage = round(control_max / total_max_score * 100, 2)
        return f"+{format_number(percentage)}%"
    return f"+{format_number(control_max)} points"


def validation_error(control: ControlDefinition) -> Optional[str]:
    """Return why a control fails the data-quality gate, or None if it passes."""
    if not control.id or not control.id.strip():
        return "missing identifier"
    if not control.title or not control.title.strip():
        return "missing title"
    if not CONTROL_ID_RE.match(control.id):
        return f"invalid identifier format: {control.id!r}"
    if control.max_score is not None and not (0 <= control.max_score <= 100):
        return f"max score out of range: {format_number(control.max_score)}"
    return None


def validate_control(control: ControlDefinition) -> bool:
    """Data-quality gate applied before a control is classified.

    A non-HTTP action URL does not fail validation; the control is still
    reported, just without an actionable link.
    """
    return validation_error(control) is None


def has_http_action_url(control: ControlDefinition) -> bool:
    return bool(HTTP_URL_RE.match((control.action_url or "").strip()))
