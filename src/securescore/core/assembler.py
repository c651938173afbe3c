"""Report aggregation.

``add_item`` is the only way items enter a report. The summary counters
are derived from the items, so they always agree with the collection.
"""

from __future__ import annotations

from typing import Optional

from ..models.report import ReportData, ReportItem


def new_report() -> ReportData:
    return ReportData()


def add_item(report: ReportData, item: ReportItem) -> None:
    """Append an item. Unknown status counts toward the total only."""
    report.add_item(item)


def record_skipped(report: ReportData, count: int = 1) -> None:
    report.skipped += count


def set_metadata(
    report: ReportData,
    tenant_id: Optional[str] = None,
    tenant_name: Optional[str] = None,
    generated_by: Optional[str] = None,
    generated_at: Optional[str] = None,
    current_score: Optional[float] = None,
    max_score: Optional[float] = None,
) -> None:
    """Overwrite only the metadata fields that were supplied (non-empty)."""
    updates = {
        "tenant_id": tenant_id,
        "tenant_name": tenant_name,
        "generated_by": generated_by,
        "generated_at": generated_at,
        "current_score": current_score,
        "max_score": max_score,
    }
    for field_name, value in updates.items():
        if value is None or value == "":
            continue
        setattr(report.metadata, field_name, value)


def compliance_percentage(report: ReportData) -> float:
    """Compliant share of the controls that apply to this tenant."""
    s = report.summary
    applicable = s.compliant + s.non_compliant
    return round((s.compliant / applicable) * 100, 1) if applicable > 0 else 0.0


def score_percentage(report: ReportData) -> float:
    m = report.metadata
    return round((m.current_score / m.max_score) * 100, 1) if m.max_score > 0 else 0.0
