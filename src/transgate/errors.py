"""Error taxonomy shared by translation adapters."""
from typing import Optional


class TranslatorError(Exception):
    """Base exception for translation adapters."""


class ConfigurationError(TranslatorError):
    """Adapter configuration is missing a field or has the wrong type.

    Raised at construction time. Not retryable.
    """


class UnsupportedLanguageError(TranslatorError):
    """Source or target language has no provider code.

    Raised before any request is sent.
    """

    def __init__(self, language: Optional[str], role: str):
        super().__init__(f"{role}Lang:{language} is not supported")
        self.language = language
        self.role = role


class ServiceUnavailableError(TranslatorError):
    """Provider answered with a non-success status or an empty body."""

    def __init__(self, status_code: int):
        super().__init__(f"return code invalid, code:{status_code}")
        self.status_code = status_code


class InvalidResponseError(TranslatorError):
    """Provider answered successfully but the body has the wrong shape."""

    def __init__(self, message: str, body: str = ""):
        super().__init__(message)
        self.body = body
