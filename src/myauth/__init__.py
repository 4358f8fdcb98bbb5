"""myauth.

Manage several stored Codex / ChatGPT OAuth credentials and switch which
one the downstream application uses.
"""

__version__ = "0.1.0"

from myauth.commands import (
    delete_credential,
    list_credentials,
    refresh_cache,
    use_credential,
)
from myauth.config import Config, ConfigError, load_config
from myauth.context import AppContext, create_context
from myauth.exceptions import MyAuthError

__all__ = [
    "AppContext",
    "Config",
    "ConfigError",
    "MyAuthError",
    "__version__",
    "create_context",
    "delete_credential",
    "list_credentials",
    "load_config",
    "refresh_cache",
    "use_credential",
]
