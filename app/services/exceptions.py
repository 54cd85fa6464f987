class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class DownstreamServiceError(ServiceError):
    """Raised when the invoicing backend returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class SessionNotFoundError(ServiceError):
    """Raised when a voice session id is unknown or was already discarded."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class ToolError(ServiceError):
    """Failure surfaced to the LLM and spoken back to the user.

    ``user_message`` is safe for text-to-speech and always tells the caller
    how to recover.
    """

    kind = "ToolError"

    def __init__(self, user_message: str, *, cause: Exception | None = None):
        super().__init__(user_message, cause=cause)
        self.user_message = user_message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.user_message}


class NotFoundError(ToolError):
    """A customer or business id does not resolve inside the workspace."""

    kind = "NotFound"


class PreconditionError(ToolError):
    """A tool was called before the steps it depends on were completed."""

    kind = "PreconditionViolation"


class ValidationFailedError(ToolError):
    """Malformed tool input, such as an unparseable or past due date."""

    kind = "ValidationFailure"


class UpstreamUnavailableError(ToolError):
    """The persistence layer failed in an unexpected way."""

    kind = "UpstreamUnavailable"
