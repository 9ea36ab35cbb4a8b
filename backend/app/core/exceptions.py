"""Domain exceptions shared by the progress, cache and planning layers."""


class SkillSculptorError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(SkillSculptorError, ValueError):
    """Raised when input is malformed (bad date, bad task data, empty fields)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(SkillSculptorError):
    """Raised when a requested record does not exist."""

    pass


class ExternalServiceError(SkillSculptorError):
    """Raised when the AI provider fails or returns unusable output."""

    pass


class QuotaExceededError(ExternalServiceError):
    """Raised when the AI provider rejects a call for quota or rate reasons."""

    pass
