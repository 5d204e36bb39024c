"""
Session client interface.

The only surface through which the engine reaches the host runtime. The host
(or a test) provides an object implementing SessionClient and injects it into
TokenscopeService; nothing in the engine talks to a global client.
"""

from typing import List, Optional, Protocol, runtime_checkable

from .models import ChildSession, ExportedSession, Message, ToolDescriptor


@runtime_checkable
class SessionClient(Protocol):
    """Narrow view of the host runtime used by the analyzers"""

    async def get_messages(self, session_id: str) -> List[Message]:
        """Ordered messages of a session. An empty list is a valid result."""
        ...

    async def get_children(self, session_id: str) -> List[ChildSession]:
        """Direct child sessions of a session."""
        ...

    async def list_tools(self, provider_id: str, model_id: str) -> List[ToolDescriptor]:
        """Tools (with descriptions) offered to the given provider and model."""
        ...

    async def export_session(self, session_id: str) -> Optional[ExportedSession]:
        """
        Full session export including raw system prompts and tool maps.

        Returns None when the host cannot produce one; the context analyzer
        then works from telemetry alone.
        """
        ...
