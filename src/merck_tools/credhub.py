"""Copy platform-bound credentials into the process environment.

On Cloud Foundry, bound services arrive as JSON in ``VCAP_SERVICES``. Every
key of every ``credhub`` entry's ``credentials`` map is exported upper-cased
(``jira_email`` -> ``JIRA_EMAIL``) so the clients' env fallbacks pick them up.
Malformed or missing input is ignored; this never raises.
"""

from __future__ import annotations

import json
import logging
import os
from typing import List, Mapping, MutableMapping, Optional

from .core.observability import log_event

log = logging.getLogger("merck_tools.credhub")

VCAP_ENV = "VCAP_SERVICES"
CREDHUB_KEY = "credhub"


def load_credhub(environ: Optional[MutableMapping[str, str]] = None) -> List[str]:
    """Export credhub credentials; returns the sorted names that were set."""
    env = os.environ if environ is None else environ
    raw = env.get(VCAP_ENV)
    if not raw:
        return []

    try:
        services = json.loads(raw)
    except ValueError:
        log.warning("%s is not valid JSON; skipping credhub bootstrap", VCAP_ENV)
        return []

    if not isinstance(services, Mapping):
        return []
    entries = services.get(CREDHUB_KEY)
    if not isinstance(entries, list):
        return []

    exported = set()
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        credentials = entry.get("credentials")
        if not isinstance(credentials, Mapping):
            continue
        for key, value in credentials.items():
            if value is None or not str(key).strip():
                continue
            name = str(key).upper()
            env[name] = str(value)
            exported.add(name)

    names = sorted(exported)
    if names:
        # names only; values are secrets
        log_event("credhub_loaded", log, level=logging.DEBUG, count=len(names))
    return names


__all__ = ["load_credhub", "VCAP_ENV"]
