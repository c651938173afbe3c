"""Bundled sample tenant for --dry-run (no network)."""

from __future__ import annotations

import json
from importlib import resources

from ..models.control import ControlDefinition, SecureScoreSnapshot
from .client import parse_control_profile, parse_secure_score

SAMPLE_TENANT_FILE = "sample-tenant.json"


def load_sample_tenant() -> tuple[dict, SecureScoreSnapshot, list[ControlDefinition]]:
    """Return (organization, latest score, control profiles) from the sample dataset.

    The dataset is stored in Graph's own JSON shape and goes through the
    same parsers as live responses.
    """
    data_pkg = resources.files("securescore.data")
    document = json.loads((data_pkg / SAMPLE_TENANT_FILE).read_text(encoding="utf-8"))
    organization = document.get("organization") or {}
    snapshot = parse_secure_score(document.get("secureScore") or {})
    profiles = [parse_control_profile(p) for p in document.get("controlProfiles") or []]
    return organization, snapshot, profiles
