"""Action URL normalization.

Resolution order for a control's action URL:

1. Curated exact mapping by control title (always wins).
2. Non-HTTP input: keyword fallback, else no link at all.
3. learn.microsoft.com documentation link: keyword fallback, else keep it.
4. Legacy literal replacements, applied in table order.
5. portal.azure.com Azure AD blades move to entra.microsoft.com
   (commercial cloud only).
6. Tenant context (``tid=``) for known portal hosts.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from ..models.mapping import UrlMappingTable
from .errors import MappingsNotLoadedError

HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
TID_PARAM_RE = re.compile(r"(?<![A-Za-z0-9_])tid=[0-9A-Fa-f-]+(?=[&#/]|$)")
COMMERCIAL_PORTAL_RE = re.compile(r"^https?://portal\.azure\.com(?=[/?#]|$)", re.IGNORECASE)

DOCS_HOST_MARKER = "learn.microsoft.com"
AAD_PATH_MARKER = "Microsoft_AAD"
ENTRA_BASE = "https://entra.microsoft.com"

PORTAL_HOSTS = frozenset({
    # Commercial
    "portal.azure.com",
    "aad.portal.azure.com",
    "entra.microsoft.com",
    # US Government
    "portal.azure.us",
    "aad.portal.azure.us",
    "entra.microsoft.us",
    # China (21Vianet)
    "portal.azure.cn",
    "aad.portal.azure.cn",
    # Germany
    "portal.microsoftazure.de",
})


def _compile_keyword(keyword: str) -> re.Pattern:
    """Keywords are regexes; ones that don't compile match literally."""
    try:
        return re.compile(keyword, re.IGNORECASE)
    except re.error:
        return re.compile(re.escape(keyword), re.IGNORECASE)


def _hostname(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def rewrite_entra_portal(url: str) -> str:
    """Point Azure AD blades on the commercial Azure portal at the Entra admin center.

    Sovereign portals (portal.azure.us, portal.azure.cn, portal.microsoftazure.de)
    have no Entra equivalent and are returned unchanged.
    """
    if AAD_PATH_MARKER not in url:
        return url
    if _hostname(url) != "portal.azure.com":
        return url
    return COMMERCIAL_PORTAL_RE.sub(ENTRA_BASE, url, count=1)


def inject_tenant_id(url: str, tenant_id: str) -> str:
    """Add or replace the ``tid`` query parameter on portal URLs."""
    if not tenant_id or not url:
        return url

    if "tid=" in url:
        return TID_PARAM_RE.sub(lambda _: f"tid={tenant_id}", url)

    if _hostname(url) not in PORTAL_HOSTS:
        return url

    if "?" in url:
        return url.replace("?", f"?tid={tenant_id}&", 1)
    if "#" in url:
        return url.replace("#", f"?tid={tenant_id}#", 1)
    return f"{url}?tid={tenant_id}"


class UrlNormalizer:
    """Resolves the action URL presented for each control.

    The mapping table is injected at construction and never modified.
    """

    def __init__(self, table: Optional[UrlMappingTable]):
        self.table = table
        self._exact: dict[str, str] = {}
        self._fallbacks: list[tuple[str, list[re.Pattern]]] = []
        if table is not None:
            # Title lookups are case-insensitive
            self._exact = {k.strip().lower(): v for k, v in table.control_mappings.items()}
            self._fallbacks = [
                (rule.url, [_compile_keyword(k) for k in rule.keywords])
                for rule in table.fallback_rules
            ]

    def _require_table(self) -> UrlMappingTable:
        if self.table is None:
            raise MappingsNotLoadedError(
                "URL mapping table must be loaded before resolving action URLs"
            )
        return self.table

    def exact_match(self, control_title: str) -> Optional[str]:
        self._require_table()
        return self._exact.get((control_title or "").strip().lower())

    def match_fallback(self, control_title: str) -> Optional[str]:
        """Return the URL of the first fallback rule with a keyword in the title."""
        self._require_table()
        if not control_title:
            return None
        for url, patterns in self._fallbacks:
            if any(p.search(control_title) for p in patterns):
                return url
        return None

    def apply_replacements(self, url: str) -> str:
        """Apply every literal replacement, in order, to all occurrences."""
        table = self._require_table()
        for old, new in table.url_replacements:
            if old and old in url:
                url = url.replace(old, new)
        return url

    def resolve(self, raw_url: str, control_title: str, tenant_id: str = "") -> str:
        """Return the URL to present for a control, or "" when there is none."""
        self._require_table()
        raw_url = (raw_url or "").strip()

        mapped = self.exact_match(control_title)
        if mapped:
            url = mapped
        elif not HTTP_URL_RE.match(raw_url):
            url = self.match_fallback(control_title) or ""
            if not url:
                return ""
        elif DOCS_HOST_MARKER in raw_url.lower():
            url = self.match_fallback(control_title) or raw_url
        else:
            url = raw_url

        url = self.apply_replacements(url)
        url = rewrite_entra_portal(url)
        return inject_tenant_id(url, tenant_id)
