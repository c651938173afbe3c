"""CSV export of report items."""

from __future__ import annotations

import csv
from pathlib import Path

from ..models.report import ReportData, ReportItem

CSV_COLUMNS = [
    "Category",
    "SettingName",
    "Status",
    "Risk",
    "CurrentValue",
    "ProposedValue",
    "Justification",
    "SecureScoreImpact",
    "ActionUrl",
]


def item_to_row(item: ReportItem) -> dict[str, str]:
    return {
        "Category": item.category,
        "SettingName": item.setting_name,
        "Status": item.status.value,
        "Risk": item.risk.value,
        "CurrentValue": item.current_value,
        "ProposedValue": item.proposed_value,
        "Justification": item.justification,
        "SecureScoreImpact": item.score_impact,
        "ActionUrl": item.action_url,
    }


def export_csv(report: ReportData, output_path: Path) -> Path:
    """Write report items as CSV (UTF-8 with BOM so Excel detects the encoding)."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8-sig", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for item in report.items:
            writer.writerow(item_to_row(item))
    return output_path
