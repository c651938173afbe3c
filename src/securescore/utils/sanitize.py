"""Error message sanitization to prevent credential leakage."""

from __future__ import annotations

import os
import re
from typing import Optional


def sanitize_error(message: str, secrets: Optional[list[str]] = None) -> str:
    """Sanitize error messages to prevent token, secret and path leakage."""
    if not message:
        return message

    sanitized = message
    for secret in secrets or []:
        if secret:
            sanitized = sanitized.replace(secret, "[REDACTED]")

    # Redact token and secret patterns
    sanitized = re.sub(r"Bearer\s+\S+", "Bearer [REDACTED]", sanitized)
    sanitized = re.sub(r"Authorization:\s*\S+", "Authorization: [REDACTED]", sanitized)
    sanitized = re.sub(r"client_secret=[^&\s]+", "client_secret=[REDACTED]", sanitized)
    sanitized = re.sub(r'"access_token"\s*:\s*"[^"]+"', '"access_token": "[REDACTED]"', sanitized)
    sanitized = re.sub(r"eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+", "[REDACTED_JWT]", sanitized)

    # Redact user home paths
    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or ""
    if home and len(home) > 1:
        sanitized = sanitized.replace(home, "[USER_HOME]")

    return sanitized
