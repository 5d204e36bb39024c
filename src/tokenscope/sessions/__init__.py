"""Session transcript models and the host client interface"""

from .models import (
    ChildSession,
    ExportedSession,
    ExportedSessionInfo,
    Message,
    OtherPart,
    Part,
    ReasoningPart,
    TextPart,
    TokenTelemetry,
    ToolDescriptor,
    ToolPart,
    ToolState,
    coerce_cost,
    coerce_token_count,
)
from .client import SessionClient

__all__ = [
    "ChildSession",
    "ExportedSession",
    "ExportedSessionInfo",
    "Message",
    "OtherPart",
    "Part",
    "ReasoningPart",
    "TextPart",
    "TokenTelemetry",
    "ToolDescriptor",
    "ToolPart",
    "ToolState",
    "coerce_cost",
    "coerce_token_count",
    "SessionClient",
]
