# src/toons_library/error_handler.py

from typing import Optional


class ToonsError(Exception):
    """Base class for every error raised by the toons library."""

    pass


class ConfigValidationError(ToonsError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, problems):
        self.problems = list(problems)
        super().__init__(
            "Invalid configuration: " + "; ".join(self.problems)
        )


class ListenerError(ToonsError):
    """Raised when the OAuth callback listener cannot produce a result."""

    pass


class BindError(ListenerError):
    """Raised when the callback listener cannot bind its local port."""

    def __init__(self, host: str, port: int, reason: str = ""):
        self.host = host
        self.port = port
        message = f"Unable to listen on {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CallbackParseError(ListenerError):
    """
    Raised when the OAuth redirect cannot be turned into a code/state pair.

    Covers malformed query strings, missing parameters and a state value that
    does not match the one issued for the current attempt.
    """

    pass


class RemoteApiError(ToonsError):
    """
    Raised when the remote API returns a non-success response, a body that
    cannot be decoded, or the request never completes.

    Attributes:
        stage: Which call failed ("token", "refresh", "verify", "skills", "queue")
        status_code: HTTP status if a response was received
        detail: Response body or transport error text
    """

    def __init__(self, stage: str, detail: str = "", status_code: Optional[int] = None):
        self.stage = stage
        self.status_code = status_code
        self.detail = detail
        if status_code is not None:
            message = f"{stage} request failed with HTTP {status_code}"
        else:
            message = f"{stage} request failed"
        if detail:
            message = f"{message}: {_truncate(detail)}"
        super().__init__(message)


class NotFoundError(ToonsError):
    """Raised when no stored identity matches a name or name prefix."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No Character '{name}' found")


class SerializationError(ToonsError):
    """Raised when the credential file exists but cannot be decoded."""

    def __init__(self, path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Corrupt credential file '{path}': {detail}")


def _truncate(text: str, max_length: int = 200) -> str:
    text = " ".join(text.split())
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def mask_credential(credential: Optional[str]) -> str:
    """
    Mask a token for safe display in logs and diagnostics.

    Shows only the last 6 characters (e.g., "...xyz123").
    """
    if not credential:
        return "<none>"
    if len(credential) > 6:
        return f"...{credential[-6:]}"
    return "***"
