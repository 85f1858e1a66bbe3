"""merck_tools package exports.

Components are imported on first attribute access so that, for example,
using the Jira client never imports the ``openai`` SDK.
"""

from importlib import import_module
from typing import Any

_LAZY = {
    # Clients
    "JiraClient": ("jira", "JiraClient"),
    "JiraConfig": ("jira", "JiraConfig"),
    "ConfluenceClient": ("confluence", "ConfluenceClient"),
    "ConfluenceConfig": ("confluence", "ConfluenceConfig"),
    "OAuthClient": ("auth.oauth_client", "OAuthClient"),
    "OAuthConfig": ("auth.oauth_client", "OAuthConfig"),
    "SharePointClient": ("sharepoint", "SharePointClient"),
    "SharePointConfig": ("sharepoint", "SharePointConfig"),
    "MSGraphClient": ("ms_graph", "MSGraphClient"),
    "MSGraphConfig": ("ms_graph", "MSGraphConfig"),
    "build_from_env": ("llm", "build_from_env"),
    # Bootstrap
    "load_credhub": ("credhub", "load_credhub"),
    # Exceptions
    "MerckToolsError": ("core.errors", "MerckToolsError"),
    "MerckToolsHTTPError": ("core.errors", "MerckToolsHTTPError"),
    "JiraError": ("core.errors", "JiraError"),
    "ConfluenceError": ("core.errors", "ConfluenceError"),
    "OAuthError": ("core.errors", "OAuthError"),
    "SharePointError": ("core.errors", "SharePointError"),
    "MSGraphError": ("core.errors", "MSGraphError"),
    "LLMError": ("core.errors", "LLMError"),
    # Logging
    "setup_logging": ("core.logging", "setup_logging"),
}

_SUBMODULES = {"auth", "core", "credhub", "confluence", "jira", "llm", "ms_graph", "sharepoint"}


def __getattr__(name: str) -> Any:
    if name == "dev_auth":
        value = import_module(f"{__name__}.auth.dev_auth")
    elif name in _SUBMODULES:
        value = import_module(f"{__name__}.{name}")
    elif name in _LAZY:
        module, attr = _LAZY[name]
        value = getattr(import_module(f"{__name__}.{module}"), attr)
    else:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))


__all__ = sorted([*_LAZY, "dev_auth", *_SUBMODULES])
