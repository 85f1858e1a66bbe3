import pytest

# Variables read by the Config.resolve() classmethods; cleared for every test.
MANAGED_ENV = (
    "JIRA_BASE_URL",
    "JIRA_REST_URL",
    "JIRA_EMAIL",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_PASSWORD",
    "JIRA_PAGINATION",
    "JIRA_LOG_LEVEL",
    "predictify_user",
    "predictify_password",
    "CONFLUENCE_BASE_URL",
    "CONFLUENCE_REST_URL",
    "CONFLUENCE_USER",
    "CONFLUENCE_API_TOKEN",
    "CONFLUENCE_PASSWORD",
    "CONFLUENCE_LOG_LEVEL",
    "OAUTH_BASE",
    "OAUTH_HOST",
    "OAUTH_CLIENT_ID",
    "OAUTH_KEY",
    "OAUTH_CLIENT_SECRET",
    "OAUTH_SECRET",
    "OAUTH_REDIRECT_URI",
    "OAUTH_SCOPE",
    "OAUTH_LOGIN_METHOD",
    "OAUTH_TIMEOUT",
    "DEV_AUTH",
    "DEV_AUTH_PASSPHRASE",
    "SP_BASE_URL",
    "SP_API_KEY",
    "SP_SITE_URL",
    "SP_CLIENT_ID",
    "SP_CLIENT_SECRET",
    "SP_OPEN_TIMEOUT",
    "SP_READ_TIMEOUT",
    "MS_GRAPH_BASE",
    "GRAPH_HOST",
    "MS_GRAPH_API_KEY",
    "GRAPH_KEY",
    "MS_GRAPH_UPN_DOMAIN",
    "MS_GRAPH_OPEN_TIMEOUT",
    "MS_GRAPH_READ_TIMEOUT",
    "AI_PROVIDER",
    "LLM_PROVIDER",
    "AI_MODEL",
    "AI_HTTP_TIMEOUT",
    "OPENAI_API_KEY",
    "OPENAI_API_BASE",
    "OPENAI_MODEL",
    "HTTP_READ_TIMEOUT",
    "HTTP_OPEN_TIMEOUT",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GW_API_ROOT",
    "MERCK_API_ROOT",
    "GW_API_VERSION",
    "MERCK_API_VERSION",
    "GW_MODEL",
    "MERCK_DEPLOYMENT",
    "MERCK_GW_API_KEY",
    "X_MERCK_APIKEY",
    "MERCK_API_KEY",
    "GW_API_HEADER",
    "MERCK_API_HEADER",
    "VCAP_SERVICES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # Prevent load_dotenv from repopulating values from .env
    monkeypatch.setattr("merck_tools.core.config.load_dotenv", lambda *a, **k: None)
    for name in MANAGED_ENV:
        monkeypatch.delenv(name, raising=False)
