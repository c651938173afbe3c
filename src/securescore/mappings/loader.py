"""URL mapping table loading.

The mapping document has three top-level sections::

    {
      "controlMappings": {"<category>": {"<control title>": "<url>"}},
      "fallbackRules":   {"<rule name>": {"keywords": [...], "url": "<url>"}},
      "urlReplacements": {"<old url fragment>": "<new url fragment>"}
    }
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Optional

from ..core.errors import ConfigurationError
from ..models.mapping import FallbackRule, UrlMappingTable

DEFAULT_MAPPINGS_FILE = "url-mappings.json"


def flatten_control_mappings(control_mappings: dict) -> tuple[dict[str, str], list[str]]:
    """Flatten category -> control -> URL into control -> URL.

    Later categories overwrite earlier ones on duplicate control names,
    compared without regard to case or surrounding whitespace.
    Returns the flat dict and the list of overwritten keys.
    """
    flat: dict[str, str] = {}
    duplicates: list[str] = []
    # Lookups ignore case, so duplicates are detected the same way
    seen: dict[str, str] = {}

    for category, entries in control_mappings.items():
        if category.startswith("_"):
            continue
        # Flat entry at category level: the key is the control title itself
        if isinstance(entries, str):
            entries = {category: entries}
        if not isinstance(entries, dict):
            raise ConfigurationError(
                f"controlMappings.{category} must be an object of control name -> URL"
            )
        for control_name, url in entries.items():
            if not isinstance(url, str):
                raise ConfigurationError(
                    f"controlMappings.{category}.{control_name} must be a string URL"
                )
            folded = control_name.strip().lower()
            previous = seen.get(folded)
            if previous is not None:
                if control_name not in duplicates:
                    duplicates.append(control_name)
                del flat[previous]
            seen[folded] = control_name
            flat[control_name] = url

    return flat, duplicates


def parse_fallback_rules(fallback_rules: dict) -> tuple[FallbackRule, ...]:
    """Parse fallback rules, preserving declared order."""
    rules: list[FallbackRule] = []
    for name, rule in fallback_rules.items():
        if name.startswith("_"):
            continue
        if not isinstance(rule, dict) or not rule.get("url"):
            raise ConfigurationError(f"fallbackRules.{name} must have a 'url'")
        keywords = rule.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [keywords]
        rules.append(FallbackRule(
            name=name,
            keywords=tuple(str(k) for k in keywords if k),
            url=rule["url"],
        ))
    return tuple(rules)


def parse_url_replacements(url_replacements: dict) -> tuple[tuple[str, str], ...]:
    replacements: list[tuple[str, str]] = []
    for old, new in url_replacements.items():
        if old.startswith("_"):
            continue
        if not isinstance(new, str):
            raise ConfigurationError(f"urlReplacements['{old}'] must be a string")
        replacements.append((old, new))
    return tuple(replacements)


def build_mapping_table(document: dict, source: str = "") -> UrlMappingTable:
    """Build an immutable mapping table from a parsed mapping document."""
    if not isinstance(document, dict):
        raise ConfigurationError(f"URL mapping document must be a JSON object: {source}")

    sections = {}
    for key in ("controlMappings", "fallbackRules", "urlReplacements"):
        value = document.get(key) or {}
        if not isinstance(value, dict):
            raise ConfigurationError(f"'{key}' must be a JSON object: {source}")
        sections[key] = value

    flat, duplicates = flatten_control_mappings(sections["controlMappings"])

    return UrlMappingTable(
        control_mappings=flat,
        fallback_rules=parse_fallback_rules(sections["fallbackRules"]),
        url_replacements=parse_url_replacements(sections["urlReplacements"]),
        duplicate_keys=tuple(duplicates),
        source=source,
    )


def load_url_mappings(path: Path) -> UrlMappingTable:
    """Load a URL mapping table from a JSON file."""
    if not path.exists():
        raise ConfigurationError(f"URL mapping file not found: {path}")
    try:
        document = json.loads(path.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse URL mapping file {path}: {e}") from e
    return build_mapping_table(document, source=str(path))


def load_default_mappings() -> UrlMappingTable:
    """Load the mapping table bundled with the package."""
    data_pkg = resources.files("securescore.data")
    try:
        document = json.loads((data_pkg / DEFAULT_MAPPINGS_FILE).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Bundled URL mapping table is unreadable: {e}") from e
    return build_mapping_table(document, source=f"<bundled {DEFAULT_MAPPINGS_FILE}>")


def get_mapping_table(path: Optional[Path] = None) -> UrlMappingTable:
    """Load ``path`` when given, otherwise the bundled default."""
    if path:
        return load_url_mappings(Path(path))
    return load_default_mappings()
