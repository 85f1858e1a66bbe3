"""Shared plumbing for every merck_tools component (no component imports)."""

from .config import (
    env_first,
    env_int,
    first_present,
    load_env_config,
    parse_log_level,
    pick,
    require,
    strip_slash,
)
from .errors import (
    ConfluenceError,
    JiraError,
    LLMError,
    MerckToolsError,
    MerckToolsHTTPError,
    MSGraphError,
    OAuthError,
    SharePointError,
    snippet,
)
from .http import HTTPService, build_timeout, is_success, parse_json
from .logging import LogfmtFormatter, setup_logging
from .observability import log_event

__all__ = [
    # Config helpers
    "env_first",
    "env_int",
    "pick",
    "first_present",
    "parse_log_level",
    "load_env_config",
    "strip_slash",
    "require",
    # Exceptions
    "MerckToolsError",
    "MerckToolsHTTPError",
    "JiraError",
    "ConfluenceError",
    "OAuthError",
    "SharePointError",
    "MSGraphError",
    "LLMError",
    "snippet",
    # HTTP
    "HTTPService",
    "build_timeout",
    "is_success",
    "parse_json",
    # Logging
    "LogfmtFormatter",
    "setup_logging",
    "log_event",
]
