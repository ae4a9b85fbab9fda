"""Error taxonomy shared by the analogy pipeline and the HTTP layer."""

from typing import Any, Dict, Optional


class AnalogyAIError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if message is not None:
            self.message = message
        self.details = details
        self.headers = headers
        super().__init__(self.message if details is None else f"{self.message}: {details}")


class ValidationError(AnalogyAIError):
    """Malformed or missing input fields."""

    status_code = 400
    message = "Invalid request data"


class NotFoundError(AnalogyAIError):
    """Referenced analogy is missing or belongs to another user."""

    status_code = 404
    message = "Analogy not found"


class AuthorizationError(AnalogyAIError):
    """No authenticated identity could be resolved for the request."""

    status_code = 401
    message = "Not authenticated"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message, details, headers={"WWW-Authenticate": "Bearer"})


class GenerationFormatError(AnalogyAIError):
    """The provider replied, but not with the required analogy/example fields."""

    status_code = 502
    message = "AI service returned an unexpected response. Please try again."


class GenerationProviderError(AnalogyAIError):
    """Network, auth, quota or malformed-reply failure from the LLM provider."""

    status_code = 503
    message = "AI service error. Please check your OpenAI API key and try again."


class SignInError(AnalogyAIError):
    """Google sign-in could not be completed."""

    status_code = 400
    message = "Google sign-in failed"


class ConfigurationError(AnalogyAIError):
    """A feature was used without the settings it needs."""

    status_code = 500
    message = "Server is not configured for this operation"
