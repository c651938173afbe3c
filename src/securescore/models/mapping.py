"""URL mapping table models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FallbackRule(BaseModel):
    """Keyword rule routing a control title to a portal URL."""

    model_config = ConfigDict(frozen=True)

    name: str
    keywords: tuple[str, ...] = ()
    url: str


class UrlMappingTable(BaseModel):
    """Curated URL corrections, loaded once per run and never modified.

    - control_mappings: control title -> URL (flattened from categories)
    - fallback_rules: ordered, first match wins
    - url_replacements: (old, new) literal substrings, applied in order
    """

    model_config = ConfigDict(frozen=True)

    control_mappings: dict[str, str] = {}
    fallback_rules: tuple[FallbackRule, ...] = ()
    url_replacements: tuple[tuple[str, str], ...] = ()
    duplicate_keys: tuple[str, ...] = ()
    source: str = ""
