"""Secure Score control data models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

KNOWN_CATEGORIES = frozenset({"Identity", "Data", "Device", "Apps", "Infrastructure"})


class ControlDefinition(BaseModel):
    """A Secure Score control profile as published for the tenant.

    Fields are deliberately lenient: data quality is checked by
    ``classifier.validate_control`` so that a bad record is skipped and
    counted instead of aborting the whole run.
    """

    id: str = ""
    title: str = ""
    category: str = ""
    max_score: Optional[float] = None
    implementation_cost: str = ""
    user_impact: str = ""
    threats: list[str] = []
    remediation: str = ""
    action_url: str = ""
    deprecated: bool = False


class TenantControlScore(BaseModel):
    """Achieved score for one control in the tenant's latest Secure Score."""

    control_id: str
    score: float = 0
    description: str = ""


class SecureScoreSnapshot(BaseModel):
    """Latest tenant-wide Secure Score plus the per-control score map."""

    current_score: float = 0
    max_score: float = 0
    created: str = ""
    control_scores: dict[str, TenantControlScore] = {}
