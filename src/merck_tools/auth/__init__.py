"""OAuth client and development-mode auth bypass."""

from . import dev_auth
from .oauth_client import OAuthClient, OAuthConfig, OAuthError

__all__ = ["OAuthClient", "OAuthConfig", "OAuthError", "dev_auth"]
