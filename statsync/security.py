from __future__ import annotations

import re
from typing import Optional

_JWT_RE = re.compile(r"eyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+")
_BEARER_RE = re.compile(r"Bearer\s+\S+", re.IGNORECASE)
# password/secret values are redacted even when only whitespace separates them
_PASSWORD_RE = re.compile(
    r"""(password|secret)(['"]?(?:\s*[:=]\s*|\s+)['"]?)[^\s,}&'"]+""",
    re.IGNORECASE,
)
# token needs an explicit separator so "token refresh failed" survives
_TOKEN_KV_RE = re.compile(
    r"""(token)(['"]?\s*[:=]\s*['"]?)[^\s,}&'"]+""",
    re.IGNORECASE,
)


def _mask(match: re.Match) -> str:
    return f"{match.group(1)}{match.group(2)}***"


def sanitize_error(message: Optional[str]) -> str:
    """Strip credential material from an error message before it is logged or stored.

    Removes JWT-shaped strings, ``Bearer`` header values,
    ``password hunter2`` / ``password=...`` / ``secret: ...`` fragments and
    ``token=...`` / ``token: ...`` fragments.
    """
    if not message:
        return "Unknown error"

    message = _JWT_RE.sub("***JWT***", message)
    message = _BEARER_RE.sub("Bearer ***", message)
    message = _PASSWORD_RE.sub(_mask, message)
    return _TOKEN_KV_RE.sub(_mask, message)
