"""Shared fixtures for tokenscope tests."""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from tokenscope.sessions.client import SessionClient
from tokenscope.sessions.models import Message
from tokenscope.tokenizer.manager import TokenizerManager
from tokenscope.tokenizer.models import APPROX_MODEL


def build_message(
    role: str,
    text: Optional[str] = None,
    *,
    tokens: Optional[Dict[str, Any]] = None,
    cost: Optional[float] = None,
    model_id: Optional[str] = None,
    provider_id: Optional[str] = None,
    parts: Optional[List[Dict[str, Any]]] = None,
    system: Optional[List[str]] = None,
    tools: Optional[Dict[str, bool]] = None,
    message_id: str = "msg",
) -> Message:
    """Build a Message from the host's nested {"info", "parts"} payload shape."""
    info: Dict[str, Any] = {"id": message_id, "role": role}
    if tokens is not None:
        info["tokens"] = tokens
    if cost is not None:
        info["cost"] = cost
    if model_id is not None:
        info["modelID"] = model_id
    if provider_id is not None:
        info["providerID"] = provider_id
    if system is not None:
        info["system"] = system
    if tools is not None:
        info["tools"] = tools

    payload_parts = list(parts or [])
    if text is not None:
        payload_parts.insert(0, {"type": "text", "text": text})
    return Message.model_validate({"info": info, "parts": payload_parts})


def tool_part(
    tool: str,
    output: Optional[str] = None,
    *,
    status: str = "completed",
    input: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """Raw tool part payload"""
    state: Dict[str, Any] = {"status": status}
    if output is not None:
        state["output"] = output
    if input is not None:
        state["input"] = input
    if metadata is not None:
        state["metadata"] = metadata
    if title is not None:
        state["title"] = title
    return {"type": "tool", "tool": tool, "state": state}


@pytest.fixture
def make_message():
    """Factory for transcript messages"""
    return build_message


@pytest.fixture
def make_tool_part():
    """Factory for raw tool part payloads"""
    return tool_part


@pytest.fixture
def mock_client():
    """Create a mock session client"""
    client = Mock(spec=SessionClient)
    # Make all methods async mocks
    client.get_messages = AsyncMock(return_value=[])
    client.get_children = AsyncMock(return_value=[])
    client.list_tools = AsyncMock(return_value=[])
    client.export_session = AsyncMock(return_value=None)
    return client


@pytest.fixture
def approx_manager():
    """Tokenizer manager with no exact backends: every count is ceil(len / 4)"""
    return TokenizerManager(backends={})


@pytest.fixture
def approx_model():
    return APPROX_MODEL
