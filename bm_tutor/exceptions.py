"""
Error taxonomy for the BM Tutor core.

Every operation raises one of these (or lets one propagate from a
collaborator adapter). The CLI prints them and carries on. The web app
maps them to HTTP status codes.
"""


class TutorError(Exception):
    """Base exception for all tutor errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(TutorError):
    """Raised when caller input is malformed, before any external call."""


class UpstreamFailure(TutorError):
    """Raised when an embedding, completion or store call fails."""

    def __init__(self, message: str, service: str | None = None):
        self.service = service
        if service:
            message = f"{service}: {message}"
        super().__init__(message)


class GenerationFailure(TutorError):
    """Raised when no valid quiz was produced within the retry budget."""

    def __init__(self, last_error: str, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(
            f"Quiz generation failed after {attempts} attempt(s): {last_error}"
        )


class NotFound(TutorError):
    """Raised when a quiz attempt id does not resolve."""

    def __init__(self, attempt_id: str):
        self.attempt_id = attempt_id
        super().__init__(f"Quiz attempt not found: {attempt_id}")


class InvalidAttempt(TutorError):
    """Raised when a stored attempt payload cannot be graded."""
