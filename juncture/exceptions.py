"""Exception hierarchy for the Juncture clients."""


class JunctureError(Exception):
    """Base exception for all Juncture client errors."""


class JunctureConfigurationError(JunctureError):
    """Raised when a client is constructed without a required setting."""


class JunctureEnvironmentError(JunctureError):
    """Raised when an operation needs a capability the runtime lacks (e.g. a web browser)."""


class JunctureRequestError(JunctureError):
    """Raised when a call to the Juncture API fails.

    ``status_code`` is the HTTP status of the failed response, or ``None`` when
    the request never produced one. ``payload`` is the decoded JSON error body
    (empty when the body was missing or not a JSON object).
    """

    def __init__(self, message: str, *, status_code: int | None = None, payload: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class ReauthorizationRequiredError(JunctureRequestError):
    """Raised when Juncture rejects a token request because the user must re-run the OAuth flow."""
