"""
Data models for Chat Video Editor.

This module provides Pydantic models for type safety and validation
throughout the application.
"""

from .intent import ActionKind, Intent, EDIT_ACTIONS
from .parameters import (
    PARAMETER_SCHEMAS,
    TrimParameters,
    CropParameters,
    FilterParameters,
    ColorParameters,
    AudioParameters,
    TextParameters,
    TransitionParameters,
    BackgroundParameters,
    ExportParameters,
    validate_parameters,
    parse_parameters,
)
from .operation import Operation, OperationStatus, MediaRef
from .version import Version
from .conversation import ConversationTurn, ConversationSession, EditContext, Role
from .responses import SuggestedAction, ComposedResponse, DispatchResult, CommandResponse

__all__ = [
    # Intent
    "ActionKind",
    "Intent",
    "EDIT_ACTIONS",
    # Parameters
    "PARAMETER_SCHEMAS",
    "TrimParameters",
    "CropParameters",
    "FilterParameters",
    "ColorParameters",
    "AudioParameters",
    "TextParameters",
    "TransitionParameters",
    "BackgroundParameters",
    "ExportParameters",
    "validate_parameters",
    "parse_parameters",
    # Operations and versions
    "Operation",
    "OperationStatus",
    "MediaRef",
    "Version",
    # Conversation
    "ConversationTurn",
    "ConversationSession",
    "EditContext",
    "Role",
    # Responses
    "SuggestedAction",
    "ComposedResponse",
    "DispatchResult",
    "CommandResponse",
]
