"""Report data models."""

from __future__ import annotations

from collections import Counter
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class ComplianceStatus(str, Enum):
    COMPLIANT = "Compliant"
    NON_COMPLIANT = "NonCompliant"
    NOT_APPLICABLE = "NotApplicable"
    UNKNOWN = "Unknown"


class RiskLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ReportItem(BaseModel):
    """One processed control, as rendered in the report."""

    model_config = ConfigDict(frozen=True)

    control_id: str = ""
    category: str
    setting_name: str
    current_value: str = ""
    proposed_value: str = ""
    justification: str = ""
    risk: RiskLevel
    status: ComplianceStatus
    score_impact: str = ""
    reference_url: str = ""
    action_url: str = ""


class ReportSummary(BaseModel):
    """Counters derived from the report's items; never set directly."""

    model_config = ConfigDict(frozen=True)

    total_checks: int = 0
    compliant: int = 0
    non_compliant: int = 0
    not_applicable: int = 0
    high_risk: int = 0
    medium_risk: int = 0
    low_risk: int = 0
    skipped: int = 0


class ReportMetadata(BaseModel):
    tenant_id: str = ""
    tenant_name: str = ""
    generated_by: str = ""
    generated_at: str = ""
    current_score: float = 0
    max_score: float = 0


class ReportData(BaseModel):
    """Aggregate handed to the renderers.

    ``items`` is a read-only view; new items go through ``add_item``.
    ``summary`` is recomputed from the items on every access. ``skipped``
    counts controls that were rejected before becoming items.
    """

    metadata: ReportMetadata = Field(default_factory=ReportMetadata)
    skipped: int = Field(default=0, ge=0)

    _items: list[ReportItem] = PrivateAttr(default_factory=list)

    @property
    def items(self) -> tuple[ReportItem, ...]:
        return tuple(self._items)

    def add_item(self, item: ReportItem) -> None:
        self._items.append(item)

    @property
    def summary(self) -> ReportSummary:
        statuses = Counter(item.status for item in self._items)
        risks = Counter(item.risk for item in self._items)
        return ReportSummary(
            total_checks=len(self._items),
            compliant=statuses[ComplianceStatus.COMPLIANT],
            non_compliant=statuses[ComplianceStatus.NON_COMPLIANT],
            not_applicable=statuses[ComplianceStatus.NOT_APPLICABLE],
            high_risk=risks[RiskLevel.HIGH],
            medium_risk=risks[RiskLevel.MEDIUM],
            low_risk=risks[RiskLevel.LOW],
            skipped=self.skipped,
        )
