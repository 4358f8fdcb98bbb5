"""OAuth constants for the Codex / ChatGPT identity provider.

The client id and redirect URI are pre-registered with the provider; the
redirect URI must match exactly, so the callback port is fixed.
"""

CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
AUTHORIZE_URL = "https://auth.openai.com/oauth/authorize"
TOKEN_URL = "https://auth.openai.com/oauth/token"
SCOPE = "openid profile email offline_access"

# Callback listener
OAUTH_CALLBACK_HOST = "127.0.0.1"
OAUTH_CALLBACK_PORT = 1455
OAUTH_CALLBACK_PATH = "/auth/callback"
OAUTH_CALLBACK_PATHS = (OAUTH_CALLBACK_PATH, "/callback")
REDIRECT_URI = f"http://localhost:{OAUTH_CALLBACK_PORT}{OAUTH_CALLBACK_PATH}"

# Provider-specific parameters required by the simplified Codex flow
EXTRA_AUTHORIZE_PARAMS = {
    "prompt": "login",
    "id_token_add_organizations": "true",
    "codex_cli_simplified_flow": "true",
}

# ID token claims
AUTH_CLAIM_PATH = "https://api.openai.com/auth"
ACCOUNT_ID_CLAIM = "chatgpt_account_id"
PLAN_TYPE_CLAIM = "chatgpt_plan_type"
DEFAULT_PLAN_TYPE = "free"

# Default wait for the browser callback (5 minutes)
DEFAULT_CALLBACK_TIMEOUT = 300.0
