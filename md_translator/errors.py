from typing import Optional


class TranslatorError(Exception):
    """Base class for errors raised by md_translator."""


class ConfigurationError(TranslatorError):
    """Fatal startup problem: missing credential, invalid option value."""


class DocumentStructureError(TranslatorError):
    """A translatable node is missing its parent or its source position.

    Nodes produced by the parser always carry both, so this indicates a
    parser contract violation rather than bad input data.
    """


class OracleResponseError(TranslatorError):
    """A single oracle call failed in a retryable way (transport, bad JSON)."""


class OracleExhaustedError(TranslatorError):
    """An oracle call kept failing after the bounded number of retries."""

    def __init__(self, message: str, attempts: int, last_error: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
