"""Self-contained interactive HTML report.

Inline CSS and a small inline script for filtering by status, risk and
free text. No external assets, so the file can be mailed or archived as-is.
"""

from __future__ import annotations

import html
from pathlib import Path
from typing import Any

from .. import __version__
from ..core.assembler import compliance_percentage, score_percentage
from ..core.classifier import format_number
from ..models.report import ComplianceStatus, ReportData, ReportItem, RiskLevel

_STATUS_COLOURS = {
    ComplianceStatus.COMPLIANT: "#16a34a",
    ComplianceStatus.NON_COMPLIANT: "#dc2626",
    ComplianceStatus.NOT_APPLICABLE: "#6b7280",
    ComplianceStatus.UNKNOWN: "#9ca3af",
}

_STATUS_LABELS = {
    ComplianceStatus.COMPLIANT: "Compliant",
    ComplianceStatus.NON_COMPLIANT: "Non-compliant",
    ComplianceStatus.NOT_APPLICABLE: "Not applicable",
    ComplianceStatus.UNKNOWN: "Unknown",
}

_RISK_COLOURS = {
    RiskLevel.HIGH: "#ea580c",
    RiskLevel.MEDIUM: "#d97706",
    RiskLevel.LOW: "#2563eb",
}

_SCORE_COLOUR_MAP = [
    (0, 40, "#dc2626"),
    (40, 60, "#ea580c"),
    (60, 75, "#d97706"),
    (75, 101, "#16a34a"),
]

_CSS = """
body { font-family: "Segoe UI", Arial, sans-serif; margin: 0; background: #f3f4f6; color: #111827; }
header { background: #1f2937; color: #fff; padding: 24px 32px; }
header h1 { margin: 0 0 6px 0; font-size: 24px; }
header .meta { font-size: 13px; color: #d1d5db; }
main { padding: 24px 32px; }
.cards { display: flex; flex-wrap: wrap; gap: 16px; margin-bottom: 24px; }
.card { background: #fff; border-radius: 8px; padding: 16px 20px; min-width: 150px; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
.card .value { font-size: 28px; font-weight: 600; }
.card .label { font-size: 12px; text-transform: uppercase; color: #6b7280; }
.filters { display: flex; flex-wrap: wrap; gap: 12px; margin-bottom: 16px; align-items: center; }
.filters select, .filters input { padding: 6px 8px; border: 1px solid #d1d5db; border-radius: 4px; }
table { width: 100%; border-collapse: collapse; background: #fff; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
th, td { text-align: left; padding: 8px 10px; border-bottom: 1px solid #e5e7eb; vertical-align: top; font-size: 13px; }
th { background: #f9fafb; position: sticky; top: 0; }
.badge { display: inline-block; padding: 2px 8px; border-radius: 10px; color: #fff; font-size: 11px; font-weight: 600; white-space: nowrap; }
.justification { color: #4b5563; max-width: 480px; }
.empty { padding: 24px; text-align: center; color: #6b7280; }
footer { padding: 16px 32px; font-size: 12px; color: #6b7280; }
"""

_SCRIPT = """
(function () {
  var status = document.getElementById('filter-status');
  var risk = document.getElementById('filter-risk');
  var search = document.getElementById('filter-text');
  var count = document.getElementById('visible-count');
  var rows = Array.prototype.slice.call(document.querySelectorAll('tbody tr[data-status]'));
  function apply() {
    var s = status.value, r = risk.value, q = search.value.toLowerCase();
    var shown = 0;
    rows.forEach(function (row) {
      var ok = (!s || row.dataset.status === s) &&
               (!r || row.dataset.risk === r) &&
               (!q || row.textContent.toLowerCase().indexOf(q) !== -1);
      row.style.display = ok ? '' : 'none';
      if (ok) { shown++; }
    });
    count.textContent = shown;
  }
  [status, risk].forEach(function (el) { el.addEventListener('change', apply); });
  search.addEventListener('input', apply);
  apply();
})();
"""


def _esc(val: Any) -> str:
    if val is None:
        return ""
    return html.escape(str(val))


def _score_colour(percent: float) -> str:
    for lo, hi, colour in _SCORE_COLOUR_MAP:
        if lo <= percent < hi:
            return colour
    return "#6b7280"


def _badge(text: str, colour: str) -> str:
    return f'<span class="badge" style="background:{colour}">{_esc(text)}</span>'


def _link(url: str, label: str) -> str:
    if not url:
        return ""
    return f'<a href="{_esc(url)}" target="_blank" rel="noopener noreferrer">{_esc(label)}</a>'


def _card(value: str, label: str, colour: str = "#111827") -> str:
    return (
        f'<div class="card"><div class="value" style="color:{colour}">{_esc(value)}</div>'
        f'<div class="label">{_esc(label)}</div></div>'
    )


def _render_row(item: ReportItem) -> str:
    links = " &middot; ".join(
        part for part in (
            _link(item.action_url, "Configure"),
            _link(item.reference_url, "Reference") if item.reference_url != item.action_url else "",
        ) if part
    )
    return (
        f'<tr data-status="{_esc(item.status.value)}" data-risk="{_esc(item.risk.value)}">'
        f"<td>{_esc(item.category)}</td>"
        f"<td><strong>{_esc(item.setting_name)}</strong><br><small>{_esc(item.control_id)}</small></td>"
        f"<td>{_badge(_STATUS_LABELS[item.status], _STATUS_COLOURS[item.status])}</td>"
        f"<td>{_badge(item.risk.value, _RISK_COLOURS[item.risk])}</td>"
        f"<td>{_esc(item.current_value)}</td>"
        f"<td>{_esc(item.proposed_value)}</td>"
        f'<td class="justification">{_esc(item.justification)}</td>'
        f"<td>{_esc(item.score_impact)}</td>"
        f"<td>{links}</td>"
        "</tr>"
    )


def render_html(report: ReportData, title: str = "Microsoft Secure Score Report") -> str:
    """Render the report as a single HTML document."""
    meta = report.metadata
    s = report.summary
    score_pct = score_percentage(report)
    compliance_pct = compliance_percentage(report)

    tenant_label = meta.tenant_name or meta.tenant_id or "Unknown tenant"
    if meta.tenant_name and meta.tenant_id:
        tenant_label = f"{meta.tenant_name} ({meta.tenant_id})"

    lines: list[str] = []
    lines.append("<!DOCTYPE html>")
    lines.append('<html lang="en">')
    lines.append("<head>")
    lines.append('<meta charset="utf-8">')
    lines.append('<meta name="viewport" content="width=device-width, initial-scale=1">')
    lines.append(f"<title>{_esc(title)} - {_esc(tenant_label)}</title>")
    lines.append(f"<style>{_CSS}</style>")
    lines.append("</head>")
    lines.append("<body>")

    lines.append("<header>")
    lines.append(f"<h1>{_esc(title)}</h1>")
    lines.append(
        f'<div class="meta">Tenant: {_esc(tenant_label)} &middot; '
        f"Generated {_esc(meta.generated_at)} by {_esc(meta.generated_by or 'unknown')}</div>"
    )
    lines.append("</header>")

    lines.append("<main>")
    lines.append('<div class="cards">')
    lines.append(_card(
        f"{format_number(round(meta.current_score, 2))} / {format_number(round(meta.max_score, 2))}",
        f"Secure Score ({score_pct}%)",
        _score_colour(score_pct),
    ))
    lines.append(_card(f"{compliance_pct}%", "Controls compliant", _score_colour(compliance_pct)))
    lines.append(_card(str(s.total_checks), "Controls checked"))
    lines.append(_card(str(s.compliant), "Compliant", _STATUS_COLOURS[ComplianceStatus.COMPLIANT]))
    lines.append(_card(str(s.non_compliant), "Non-compliant", _STATUS_COLOURS[ComplianceStatus.NON_COMPLIANT]))
    lines.append(_card(str(s.not_applicable), "Not applicable", _STATUS_COLOURS[ComplianceStatus.NOT_APPLICABLE]))
    lines.append(_card(str(s.high_risk), "High risk", _RISK_COLOURS[RiskLevel.HIGH]))
    lines.append(_card(str(s.medium_risk), "Medium risk", _RISK_COLOURS[RiskLevel.MEDIUM]))
    lines.append(_card(str(s.low_risk), "Low risk", _RISK_COLOURS[RiskLevel.LOW]))
    if s.skipped:
        lines.append(_card(str(s.skipped), "Skipped (invalid data)"))
    lines.append("</div>")

    lines.append('<div class="filters">')
    lines.append('<label>Status <select id="filter-status"><option value="">All</option>')
    for status in ComplianceStatus:
        lines.append(f'<option value="{status.value}">{_esc(_STATUS_LABELS[status])}</option>')
    lines.append("</select></label>")
    lines.append('<label>Risk <select id="filter-risk"><option value="">All</option>')
    for risk in RiskLevel:
        lines.append(f'<option value="{risk.value}">{risk.value}</option>')
    lines.append("</select></label>")
    lines.append('<input id="filter-text" type="search" placeholder="Search controls...">')
    lines.append(f'<span>Showing <span id="visible-count">{s.total_checks}</span> of {s.total_checks}</span>')
    lines.append("</div>")

    lines.append("<table>")
    lines.append(
        "<thead><tr><th>Category</th><th>Setting</th><th>Status</th><th>Risk</th>"
        "<th>Current value</th><th>Proposed value</th><th>Justification</th>"
        "<th>Score impact</th><th>Links</th></tr></thead>"
    )
    lines.append("<tbody>")
    if report.items:
        for item in report.items:
            lines.append(_render_row(item))
    else:
        lines.append('<tr><td class="empty" colspan="9">No controls to report.</td></tr>')
    lines.append("</tbody>")
    lines.append("</table>")
    lines.append("</main>")

    lines.append(f"<footer>securescore-report v{_esc(__version__)}</footer>")
    lines.append(f"<script>{_SCRIPT}</script>")
    lines.append("</body>")
    lines.append("</html>")

    return "\n".join(lines)


def export_html(report: ReportData, output_path: Path, title: str = "Microsoft Secure Score Report") -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_html(report, title=title), encoding="utf-8")
    return output_path
