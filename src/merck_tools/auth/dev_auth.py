"""Development-mode authentication bypass.

When ``DEV_AUTH=1`` a caller can impersonate a user through trusted request
headers (``X-Dev-User`` and friends) without hitting the OAuth provider. If
``DEV_AUTH_PASSPHRASE`` is set, the ``X-Dev-Passphrase`` header must match it.
"""

from __future__ import annotations

import hmac
import os
from typing import Any, Dict, Mapping, Optional

from ..models import DevProfile

DEVELOPMENT = "development"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Look up a header in WSGI environ (HTTP_X_DEV_USER) or raw (X-Dev-User) form."""
    wsgi_name = "HTTP_" + name.upper().replace("-", "_")
    return headers.get(wsgi_name) or headers.get(name)


def enabled(env: Optional[str] = None) -> bool:
    return os.getenv("DEV_AUTH") == "1" and (env is None or str(env) == DEVELOPMENT)


def passphrase_ok(candidate: Optional[str]) -> bool:
    expected = os.getenv("DEV_AUTH_PASSPHRASE") or ""
    if not expected:
        return True
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def profile_from_headers(
    headers: Mapping[str, str], env: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """Build a user profile from dev headers, or None when bypass does not apply."""
    if not enabled(env):
        return None

    email = _header(headers, "X-Dev-User")
    if not email or "@" not in email:
        return None

    if not passphrase_ok(_header(headers, "X-Dev-Passphrase")):
        return None

    name = _header(headers, "X-Dev-Name") or email.split("@", 1)[0]
    given, _, family = name.partition(" ")
    roles = [
        role.strip()
        for role in (_header(headers, "X-Dev-Roles") or "").split(",")
        if role.strip()
    ]

    profile = DevProfile(
        email=email,
        name=name,
        given_name=given,
        family_name=family,
        roles=roles,
        isid=_header(headers, "X-Dev-Isid"),
    )
    return profile.model_dump()


__all__ = ["enabled", "passphrase_ok", "profile_from_headers"]
