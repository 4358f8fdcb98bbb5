"""Exceptions raised by myauth.

Every error that ends a command derives from MyAuthError, so the CLI can
report it with a single handler. Per-file scan errors never surface here;
the scanner skips those files.
"""

from __future__ import annotations


class MyAuthError(Exception):
    """Base exception for myauth errors.

    Attributes:
        message: Human-readable error message
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# OAuth login


class OAuthError(MyAuthError):
    """Raised when the OAuth login flow fails."""


class ProviderError(OAuthError):
    """The identity provider redirected back with an ``error`` parameter.

    Attributes:
        error: OAuth error code from the redirect
        description: Optional error_description from the redirect
    """

    def __init__(self, error: str, description: str | None = None) -> None:
        super().__init__(f"Authorization failed: {description or error}")
        self.error = error
        self.description = description


class MissingCodeError(OAuthError):
    """The callback did not carry an authorization code."""

    def __init__(self, message: str = "No authorization code received.") -> None:
        super().__init__(message)


class MissingStateError(OAuthError):
    """The callback did not carry a state parameter."""

    def __init__(self, message: str = "No state parameter received.") -> None:
        super().__init__(message)


class StateMismatchError(OAuthError):
    """The callback state does not match the one sent (possible CSRF)."""

    def __init__(
        self,
        message: str = "State verification failed; the callback was rejected.",
    ) -> None:
        super().__init__(message)


class AuthorizationTimeoutError(OAuthError):
    """The browser flow was not completed in time.

    Attributes:
        timeout: Seconds waited before giving up
    """

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Timed out waiting for authorization ({timeout:g} seconds).")
        self.timeout = timeout


class PortInUseError(OAuthError):
    """The callback listener could not bind its fixed port.

    Attributes:
        port: The port that was already taken
    """

    def __init__(self, port: int) -> None:
        super().__init__(
            f"Port {port} is already in use. Close the program using it "
            "(or another running login) and retry."
        )
        self.port = port


class NetworkError(OAuthError):
    """The token endpoint could not be reached."""


class TokenExchangeError(OAuthError):
    """The token endpoint answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code
        response_body: Parsed JSON body or raw text, if any
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict | str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class TokenParseError(OAuthError):
    """The token endpoint answered 2xx with an unusable body."""


class InvalidTokenFormatError(OAuthError):
    """A JWT could not be split or decoded."""


# Credential catalog


class CredentialError(MyAuthError):
    """Raised for credential catalog failures."""


class IndexNotFoundError(CredentialError):
    """No cached credential matches the requested index or key.

    Attributes:
        index: The index or key that was looked up
    """

    def __init__(self, index: str) -> None:
        super().__init__(
            f"No credential found for index {index}. Run 'myauth ls --refresh' "
            "to see the available credentials."
        )
        self.index = index


class CredentialFileError(CredentialError):
    """A credential's backing file is missing or unreadable."""


# Target auth file


class TargetError(MyAuthError):
    """Raised when the target auth file cannot be updated."""


class TargetUnreadableError(TargetError):
    """The target file is missing or is not a JSON object."""


class TargetValidationError(TargetError):
    """The merged target document failed validation; nothing was written."""


class BackupError(TargetError):
    """The target backup could not be created; nothing was written."""


class TargetWriteError(TargetError):
    """The atomic write of the target failed; the original is unchanged."""


# Persistence


class StoreError(MyAuthError):
    """Raised when the cache or state file cannot be written."""
