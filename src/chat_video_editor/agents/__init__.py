"""Conversational editing components."""

from .command_interpreter import CommandInterpreter
from .response_composer import ResponseComposer
from .operation_dispatcher import OperationDispatcher
from .chat_editor import ChatEditor

__all__ = [
    "CommandInterpreter",
    "ResponseComposer",
    "OperationDispatcher",
    "ChatEditor",
]
