"""Token analysis data models"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from tokenscope.tokenizer.models import TokenModel

CATEGORY_NAMES = ("system", "user", "assistant", "tools", "reasoning")


class CategoryEntrySource(BaseModel):
    """A labeled span of raw transcript text, before tokenization"""
    label: str
    content: str


class CategoryEntry(BaseModel):
    """A labeled token count within a category"""
    label: str
    tokens: int


class CategorySummary(BaseModel):
    """Token totals for one content category"""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    total_tokens: int = Field(0, alias="totalTokens", description="Sum of all_entries tokens")
    entries: List[CategoryEntry] = Field(
        default_factory=list,
        description="Top entries by token count, truncated to the entry limit"
    )
    all_entries: List[CategoryEntry] = Field(default_factory=list, alias="allEntries")


class CategoryBreakdown(BaseModel):
    """The five content categories of a session"""
    system: CategorySummary = Field(default_factory=lambda: CategorySummary(label="system"))
    user: CategorySummary = Field(default_factory=lambda: CategorySummary(label="user"))
    assistant: CategorySummary = Field(default_factory=lambda: CategorySummary(label="assistant"))
    tools: CategorySummary = Field(default_factory=lambda: CategorySummary(label="tools"))
    reasoning: CategorySummary = Field(default_factory=lambda: CategorySummary(label="reasoning"))

    @property
    def total_tokens(self) -> int:
        return sum(getattr(self, name).total_tokens for name in CATEGORY_NAMES)


class ResolvedModel(BaseModel):
    """Tokenizer strategy plus the provider/model pair it was resolved from"""
    model_config = ConfigDict(populate_by_name=True)

    model: TokenModel
    provider_id: str = Field(..., alias="providerID")
    model_id: str = Field(..., alias="modelID")


class TokenAnalysis(BaseModel):
    """Category breakdown reconciled with provider telemetry for one session"""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionID")
    model: TokenModel
    categories: CategoryBreakdown = Field(default_factory=CategoryBreakdown)
    total_tokens: int = Field(0, alias="totalTokens")

    # Session totals summed over assistant telemetry
    input_tokens: int = Field(0, alias="inputTokens")
    output_tokens: int = Field(0, alias="outputTokens")
    reasoning_tokens: int = Field(0, alias="reasoningTokens")
    cache_read_tokens: int = Field(0, alias="cacheReadTokens")
    cache_write_tokens: int = Field(0, alias="cacheWriteTokens")
    assistant_message_count: int = Field(0, alias="assistantMessageCount")
    session_cost: float = Field(0.0, alias="sessionCost")

    # Most recent API call with nonzero usage
    most_recent_input: int = Field(0, alias="mostRecentInput")
    most_recent_output: int = Field(0, alias="mostRecentOutput")
    most_recent_reasoning: int = Field(0, alias="mostRecentReasoning")
    most_recent_cache_read: int = Field(0, alias="mostRecentCacheRead")
    most_recent_cache_write: int = Field(0, alias="mostRecentCacheWrite")
    most_recent_cost: float = Field(0.0, alias="mostRecentCost")

    all_tools_called: List[str] = Field(default_factory=list, alias="allToolsCalled")
    tool_call_counts: Dict[str, int] = Field(default_factory=dict, alias="toolCallCounts")
