# llmpal/errors.py
from typing import Optional


class LlmpalError(Exception):
    """Base class for every failure that aborts an llmpal invocation."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ConfigError(LlmpalError):
    pass


class ApiKeyMissingError(LlmpalError):
    pass


class InvalidPermissionSetError(LlmpalError):
    pass


class FileReadError(LlmpalError):
    pass


class TransportError(LlmpalError):
    """The provider returned no usable reply (network, status or envelope problem)."""


class ValidationError(LlmpalError):
    """The model's edit batch was rejected as a whole."""


class NoEditsProduced(ValidationError):
    pass


class DuplicateEditError(ValidationError):
    pass


class UnauthorizedWriteError(ValidationError):
    pass


class UnauthorizedCreateError(ValidationError):
    pass


class ApplyError(LlmpalError):
    pass


class ConcurrentModificationError(ApplyError):
    pass


class FileAlreadyExistsError(ApplyError):
    pass


class FileWriteError(ApplyError):
    pass
