"""Custom exceptions for ogimage with user-friendly messages."""


class OgImageError(Exception):
    """Base exception for ogimage errors."""

    def __init__(self, message: str, user_hint: str | None = None):
        self.message = message
        self.user_hint = user_hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.user_hint:
            return f"{self.message}\n  Hint: {self.user_hint}"
        return self.message


class ConfigurationError(OgImageError):
    """A required secret or setting is missing."""

    def __init__(self, setting: str, env_vars: tuple[str, ...] = ()):
        hint = f"Provide --{setting}"
        if env_vars:
            hint += f" or set {' / '.join(env_vars)}"
        super().__init__(message=f"Missing {setting}", user_hint=hint)


class ValidationError(OgImageError):
    """Input validation error."""

    def __init__(self, field: str, reason: str):
        super().__init__(message=f"Invalid {field}: {reason}")
