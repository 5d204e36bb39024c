"""Session transcript models supplied by the host runtime.

The engine treats every model here as read-only input. Host payloads use
camelCase keys and a nested ``{"info": {...}, "parts": [...]}`` message shape;
both are accepted as-is.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
    model_validator,
)


def coerce_token_count(value: Any) -> int:
    """
    Read a token count that may be missing or malformed.

    Returns 0 for None, non-numeric, negative, NaN or boolean values. Floats are
    truncated. This is the single zero-default accessor for telemetry.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number or number <= 0:  # NaN or non-positive
        return 0
    if number == float("inf"):
        return 0
    return int(number)


def coerce_cost(value: Any) -> float:
    """Read a monetary cost, returning 0.0 for missing or malformed values."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


class TokenTelemetry(BaseModel):
    """Provider-reported token usage for one assistant call"""
    model_config = ConfigDict(populate_by_name=True)

    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache_read: int = Field(0, alias="cacheRead")
    cache_write: int = Field(0, alias="cacheWrite")

    @model_validator(mode="before")
    @classmethod
    def flatten_cache(cls, data: Any) -> Any:
        """Accept the host's nested ``{"cache": {"read", "write"}}`` shape."""
        if not isinstance(data, dict):
            return {}
        data = dict(data)
        cache = data.pop("cache", None)
        if isinstance(cache, dict):
            data.setdefault("cacheRead", cache.get("read"))
            data.setdefault("cacheWrite", cache.get("write"))
        return data

    @field_validator("input", "output", "reasoning", "cache_read", "cache_write", mode="before")
    @classmethod
    def default_to_zero(cls, v: Any) -> int:
        return coerce_token_count(v)

    @property
    def total(self) -> int:
        """All token classes combined"""
        return self.input + self.output + self.reasoning + self.cache_read + self.cache_write


class ToolState(BaseModel):
    """Execution state of a tool invocation"""
    model_config = ConfigDict(populate_by_name=True)

    status: str = "pending"  # pending | running | completed | error
    input: Optional[Dict[str, Any]] = None
    output: Optional[str] = None
    title: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("output", mode="before")
    @classmethod
    def stringify_output(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator("input", "metadata", mode="before")
    @classmethod
    def drop_non_mapping(cls, v: Any) -> Optional[Dict[str, Any]]:
        return v if isinstance(v, dict) else None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


class TextPart(BaseModel):
    """Plain text content"""
    type: Literal["text"] = "text"
    text: str = ""
    synthetic: bool = False

    @field_validator("text", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ReasoningPart(BaseModel):
    """Model reasoning trace"""
    type: Literal["reasoning"] = "reasoning"
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def text_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ToolPart(BaseModel):
    """Tool invocation and its state"""
    type: Literal["tool"] = "tool"
    tool: str = ""
    state: ToolState = Field(default_factory=ToolState)

    @field_validator("tool", mode="before")
    @classmethod
    def tool_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("state", mode="before")
    @classmethod
    def state_or_default(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, ToolState)) else {}


class OtherPart(BaseModel):
    """Any part whose tag is not handled by the engine (ignored by every consumer)"""
    model_config = ConfigDict(extra="allow")

    type: str = "other"

    @field_validator("type", mode="before")
    @classmethod
    def type_as_string(cls, v: Any) -> str:
        return "other" if v is None else str(v)


_KNOWN_PART_TAGS = ("text", "reasoning", "tool")


def _part_tag(value: Any) -> str:
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    return tag if tag in _KNOWN_PART_TAGS else "other"


Part = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ReasoningPart, Tag("reasoning")],
        Annotated[ToolPart, Tag("tool")],
        Annotated[OtherPart, Tag("other")],
    ],
    Discriminator(_part_tag),
]


class Message(BaseModel):
    """One message of a session transcript"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    role: str = ""  # system | user | assistant | tool; empty when the host omitted it
    parts: List[Part] = Field(default_factory=list)
    tokens: Optional[TokenTelemetry] = None
    cost: Optional[float] = None
    model_id: Optional[str] = Field(None, alias="modelID")
    provider_id: Optional[str] = Field(None, alias="providerID")
    # Raw system prompt strings sent with an assistant call, when the host exposes them
    system: List[str] = Field(default_factory=list)
    # Tool enablement map sent with the call (name -> enabled)
    tools: Dict[str, bool] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def flatten_info(cls, data: Any) -> Any:
        """Accept the host's ``{"info": {...}, "parts": [...]}`` shape."""
        if isinstance(data, dict) and isinstance(data.get("info"), dict):
            flattened = dict(data["info"])
            flattened["parts"] = data.get("parts") or []
            return flattened
        return data

    @field_validator("role", "id", mode="before")
    @classmethod
    def string_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("parts", mode="before")
    @classmethod
    def list_or_empty(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return []
        # Entries that are neither payloads nor parts become ignored OtherParts
        return [p if isinstance(p, (dict, BaseModel)) else {"type": "other"} for p in v]

    @field_validator("system", mode="before")
    @classmethod
    def strings_only(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [p for p in v if isinstance(p, str)]

    @field_validator("tools", mode="before")
    @classmethod
    def tools_or_empty(cls, v: Any) -> Dict[str, bool]:
        if not isinstance(v, dict):
            return {}
        # Only a real True enables a tool; "false", 1 or None do not
        return {str(name): enabled is True for name, enabled in v.items() if name}

    @field_validator("tokens", mode="before")
    @classmethod
    def telemetry_or_none(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, TokenTelemetry)) else None

    @field_validator("cost", mode="before")
    @classmethod
    def cost_or_none(cls, v: Any) -> Optional[float]:
        return None if v is None else coerce_cost(v)

    @property
    def has_telemetry(self) -> bool:
        """Whether the provider reported usage or a cost for this message"""
        return self.tokens is not None or self.cost is not None

    @property
    def usage(self) -> TokenTelemetry:
        """Telemetry with every field defaulted to zero"""
        return self.tokens if self.tokens is not None else TokenTelemetry()

    @property
    def cost_or_zero(self) -> float:
        return self.cost if self.cost is not None else 0.0


class ChildSession(BaseModel):
    """Child session descriptor returned by the host"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    parent_id: Optional[str] = Field(None, alias="parentID")

    @field_validator("title", mode="before")
    @classmethod
    def title_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ToolDescriptor(BaseModel):
    """Tool metadata returned by the host tool catalog"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    description: str = ""

    @field_validator("description", mode="before")
    @classmethod
    def description_or_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class ExportedSessionInfo(BaseModel):
    """Session header of a full export"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    title: str = ""
    parent_id: Optional[str] = Field(None, alias="parentID")


class ExportedSession(BaseModel):
    """Full session export: header plus messages with raw prompts and tool maps"""
    model_config = ConfigDict(populate_by_name=True)

    info: ExportedSessionInfo = Field(default_factory=ExportedSessionInfo)
    messages: List[Message] = Field(default_factory=list)
