"""Exception hierarchy for report runs."""

from __future__ import annotations

from typing import Optional


class SecureScoreError(Exception):
    """Base class for errors that abort a report run."""


class ConfigurationError(SecureScoreError):
    """Mapping table or configuration file is missing, unreadable or malformed."""


class MappingsNotLoadedError(ConfigurationError):
    """A URL was resolved before any mapping table was supplied."""


class GraphError(SecureScoreError):
    """Microsoft Graph request failed (network, auth or HTTP status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
