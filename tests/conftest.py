"""Shared fixtures for Secure Score report tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from securescore.core.normalizer import UrlNormalizer
from securescore.mappings.loader import build_mapping_table
from securescore.models.control import ControlDefinition, TenantControlScore
from securescore.models.mapping import UrlMappingTable

MFA_URL = "https://entra.microsoft.com/#view/Microsoft_AAD_ConditionalAccess/ConditionalAccessBlade/~/Policies"
DEFENDER_URL = "https://security.microsoft.com/threatpolicy"
PURVIEW_URL = "https://purview.microsoft.com/"


@pytest.fixture
def mapping_document() -> dict:
    """A small mapping document in the on-disk JSON shape."""
    return {
        "controlMappings": {
            "Identity": {
                "Require MFA for admins": MFA_URL,
                "Block legacy authentication": MFA_URL,
            },
            "Apps": {
                "Turn on Safe Links": "https://security.microsoft.com/safelinksv2",
            },
        },
        "fallbackRules": {
            "defender": {
                "keywords": ["safe attachments", "phish"],
                "url": DEFENDER_URL,
            },
            "purview": {
                "keywords": ["\\bDLP\\b", "audit"],
                "url": PURVIEW_URL,
            },
            "catchAllPhishing": {
                "keywords": ["phishing"],
                "url": "https://example.invalid/never-reached",
            },
        },
        "urlReplacements": {
            "https://aad.portal.azure.com": "https://portal.azure.com",
            "https://protection.office.com": "https://security.microsoft.com",
        },
    }


@pytest.fixture
def mapping_table(mapping_document: dict) -> UrlMappingTable:
    return build_mapping_table(mapping_document, source="test")


@pytest.fixture
def normalizer(mapping_table: UrlMappingTable) -> UrlNormalizer:
    return UrlNormalizer(mapping_table)


@pytest.fixture
def mapping_file(tmp_path: Path, mapping_document: dict) -> Path:
    path = tmp_path / "url-mappings.json"
    path.write_text(json.dumps(mapping_document), encoding="utf-8")
    return path


@pytest.fixture
def sample_controls() -> list[ControlDefinition]:
    return [
        ControlDefinition(
            id="MFA1",
            title="Require MFA for admins",
            category="Identity",
            max_score=10,
            user_impact="Low",
            threats=["Account Breach"],
            remediation="<p>Enable MFA for <b>all</b> admins.</p>",
            action_url="https://learn.microsoft.com/x",
        ),
        ControlDefinition(
            id="SafeAtt",
            title="Turn on Safe Attachments",
            category="Apps",
            max_score=5,
            user_impact="Low",
            action_url="https://protection.office.com/safeattachment",
        ),
        ControlDefinition(
            id="Audit.Log",
            title="Enable audit data recording",
            category="Data",
            max_score=2,
            user_impact="Low",
            action_url="Purview portal",
        ),
        ControlDefinition(
            id="bad id!",
            title="Malformed",
            category="Identity",
            max_score=3,
        ),
    ]


@pytest.fixture
def sample_scores() -> dict[str, TenantControlScore]:
    return {
        "MFA1": TenantControlScore(control_id="MFA1", score=0),
        "SafeAtt": TenantControlScore(control_id="SafeAtt", score=5, description="Policy in place."),
    }


@pytest.fixture
def graph_secure_score() -> dict:
    """A /security/secureScores item as Graph returns it."""
    return {
        "createdDateTime": "2026-01-01T00:00:00Z",
        "currentScore": 15.0,
        "maxScore": 50.0,
        "controlScores": [
            {"controlName": "MFA1", "controlCategory": "Identity", "score": 10.0, "description": "All admins use MFA."},
            {"controlName": "SafeAtt", "controlCategory": "Apps", "score": None},
            {"controlCategory": "Apps", "score": 1.0},
        ],
    }


@pytest.fixture
def graph_control_profile() -> dict:
    """A /security/secureScoreControlProfiles item as Graph returns it."""
    return {
        "id": "MFA1",
        "title": "Require MFA for admins",
        "controlCategory": "Identity",
        "maxScore": 10.0,
        "implementationCost": "Low",
        "userImpact": "Low",
        "threats": ["accountBreach", "elevationOfPrivilege"],
        "remediation": "<p>Require MFA.</p>",
        "actionUrl": "https://learn.microsoft.com/x",
        "deprecated": False,
    }
