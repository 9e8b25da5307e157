"""Error taxonomy for Chat Video Editor."""

from typing import List, Optional


class ChatVideoEditorError(Exception):
    """Base exception for all editor errors."""
    pass


class IntentResolutionError(ChatVideoEditorError):
    """Language model unreachable or its output unusable."""
    pass


class LanguageModelError(IntentResolutionError):
    """Base class for failures reported by the language-model dependency."""
    pass


class AuthError(LanguageModelError):
    """API key missing, invalid or not authorized."""
    pass


class QuotaError(LanguageModelError):
    """Rate limit or quota exceeded."""
    pass


class LanguageModelTimeout(LanguageModelError):
    """Completion did not finish within the configured timeout."""
    pass


class LanguageModelUnavailable(LanguageModelError):
    """Any other transport or server failure."""
    pass


class ValidationError(ChatVideoEditorError):
    """Missing or invalid operation parameters."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class UnsupportedActionError(ChatVideoEditorError):
    """Action has no transformation handler."""

    def __init__(self, action: str, message: str = "Operation not supported yet"):
        super().__init__(message)
        self.action = action
        self.message = message


class ToolchainError(ChatVideoEditorError):
    """Underlying media toolchain failed to execute an operation."""
    pass


class TransformationError(ChatVideoEditorError):
    """A transformation failed; carries a human-readable message."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class InvalidTransition(ChatVideoEditorError):
    """Status tracker asked to make a transition its state machine forbids."""

    def __init__(self, operation_id: str, current: str, target: str):
        super().__init__(
            f"Operation {operation_id} cannot move from {current} to {target}"
        )
        self.operation_id = operation_id
        self.current = current
        self.target = target


class OperationNotFoundError(ChatVideoEditorError, KeyError):
    """No operation with the requested id."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class VersionNotFoundError(ChatVideoEditorError, KeyError):
    """No version (or media) with the requested id."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class StorageError(ChatVideoEditorError):
    """Base exception for storage operations."""
    pass
