"""Microsoft Graph client for Secure Score data.

App-only (client credentials) authentication; read-only calls:

    GET /organization
    GET /security/secureScores?$top=1
    GET /security/secureScoreControlProfiles

Required application permission: SecurityEvents.Read.All
(plus Organization.Read.All for the tenant display name).
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from ..core.config import get_cloud_endpoints
from ..core.errors import GraphError
from ..models.control import ControlDefinition, SecureScoreSnapshot, TenantControlScore
from ..utils.sanitize import sanitize_error

GRAPH_VERSION = "v1.0"
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
MAX_RETRY_AFTER_SECONDS = 60


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_control_profile(data: dict) -> ControlDefinition:
    """Map a secureScoreControlProfile resource onto a ControlDefinition."""
    threats = data.get("threats") or []
    if isinstance(threats, str):
        threats = [t.strip() for t in threats.split(",") if t.strip()]

    return ControlDefinition(
        id=str(data.get("id") or ""),
        title=str(data.get("title") or ""),
        category=str(data.get("controlCategory") or ""),
        max_score=_as_float(data.get("maxScore")),
        implementation_cost=str(data.get("implementationCost") or ""),
        user_impact=str(data.get("userImpact") or ""),
        threats=[str(t) for t in threats],
        remediation=str(data.get("remediation") or ""),
        action_url=str(data.get("actionUrl") or ""),
        deprecated=bool(data.get("deprecated")),
    )


def parse_secure_score(data: dict) -> SecureScoreSnapshot:
    """Map a secureScore resource onto a snapshot with a per-control score map."""
    control_scores: dict[str, TenantControlScore] = {}
    for entry in data.get("controlScores") or []:
        name = entry.get("controlName")
        if not name:
            continue
        control_scores[name] = TenantControlScore(
            control_id=name,
            score=_as_float(entry.get("score")) or 0,
            description=str(entry.get("description") or ""),
        )

    return SecureScoreSnapshot(
        current_score=_as_float(data.get("currentScore")) or 0,
        max_score=_as_float(data.get("maxScore")) or 0,
        created=str(data.get("createdDateTime") or ""),
        control_scores=control_scores,
    )


class GraphClient:
    """Async Microsoft Graph client. Use as an async context manager."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        cloud: str = "commercial",
        timeout: float = 60,
        retry_attempts: int = 3,
        retry_delay: float = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        endpoints = get_cloud_endpoints(cloud)
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self.login_base = endpoints["login"]
        self.graph_base = f"{endpoints['graph']}/{GRAPH_VERSION}"
        self.scope = f"{endpoints['graph']}/.default"
        self.timeout = timeout
        self.max_attempts = max(1, retry_attempts)
        self.retry_delay = retry_delay
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._token: Optional[str] = None

    async def __aenter__(self) -> "GraphClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _sanitize(self, message: str) -> str:
        return sanitize_error(message, secrets=[self._client_secret, self._token or ""])

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            raise GraphError("GraphClient used outside of 'async with'")
        return self._client

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying throttling, 5xx and transport errors."""
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._http().request(method, url, **kwargs)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt >= self.max_attempts:
                    break
                await asyncio.sleep(self.retry_delay * attempt)
                continue

            if response.status_code not in RETRYABLE_STATUS or attempt >= self.max_attempts:
                return response

            wait_time = self.retry_delay * attempt
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                wait_time = min(int(retry_after), MAX_RETRY_AFTER_SECONDS)
            await asyncio.sleep(wait_time)

        raise GraphError(self._sanitize(f"Request to {url} failed: {last_error}"))

    async def authenticate(self) -> None:
        """Acquire an app-only access token (client credentials grant)."""
        url = f"{self.login_base}/{self.tenant_id}/oauth2/v2.0/token"
        response = await self._send(
            "POST",
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self._client_secret,
                "scope": self.scope,
            },
        )
        if response.status_code != 200:
            detail = ""
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("error_description") or body.get("error") or ""
            except ValueError:
                detail = response.text[:200]
            raise GraphError(
                self._sanitize(f"Authentication failed ({response.status_code}): {detail}"),
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GraphError("Authentication response was not valid JSON") from e
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise GraphError("Authentication response did not include an access token")
        self._token = token

    def _headers(self) -> dict:
        if not self._token:
            raise GraphError("Not authenticated: call authenticate() first")
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

    async def get_json(self, path_or_url: str, params: Optional[dict] = None) -> dict:
        """GET a Graph resource and return the decoded JSON body."""
        if path_or_url.startswith("https://"):
            url = path_or_url
        else:
            url = f"{self.graph_base}/{path_or_url.lstrip('/')}"

        response = await self._send("GET", url, headers=self._headers(), params=params)

        if response.status_code == 403:
            raise GraphError(
                f"Permission denied for '{path_or_url}'. Grant SecurityEvents.Read.All "
                f"and Organization.Read.All with admin consent.",
                status_code=403,
            )
        if response.status_code != 200:
            raise GraphError(
                self._sanitize(
                    f"HTTP {response.status_code} for '{path_or_url}': {response.text[:200]}"
                ),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise GraphError(f"Non-JSON response from '{path_or_url}'") from e

    async def get_paged(self, path: str, params: Optional[dict] = None) -> list[dict]:
        """GET a collection, following @odata.nextLink until exhausted."""
        items: list[dict] = []
        body = await self.get_json(path, params=params)
        while True:
            items.extend(body.get("value") or [])
            next_link = body.get("@odata.nextLink")
            if not next_link:
                return items
            body = await self.get_json(next_link)

    async def get_organization(self) -> dict:
        """Return {id, displayName} for the tenant."""
        orgs = await self.get_paged("organization", params={"$select": "id,displayName"})
        if not orgs:
            return {"id": self.tenant_id, "displayName": ""}
        return orgs[0]

    async def get_latest_secure_score(self) -> SecureScoreSnapshot:
        body = await self.get_json("security/secureScores", params={"$top": "1"})
        scores = body.get("value") or []
        if not scores:
            raise GraphError("No Secure Score data returned for this tenant")
        return parse_secure_score(scores[0])

    async def list_control_profiles(self) -> list[ControlDefinition]:
        profiles = await self.get_paged("security/secureScoreControlProfiles")
        return [parse_control_profile(p) for p in profiles]
