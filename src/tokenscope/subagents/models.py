"""Subagent (child session) usage models"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SubagentSummary(BaseModel):
    """Own usage of one descendant session"""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionID")
    title: str = ""
    agent_type: str = Field(..., alias="agentType")
    input_tokens: int = Field(0, alias="inputTokens")
    output_tokens: int = Field(0, alias="outputTokens")
    reasoning_tokens: int = Field(0, alias="reasoningTokens")
    cache_read_tokens: int = Field(0, alias="cacheReadTokens")
    cache_write_tokens: int = Field(0, alias="cacheWriteTokens")
    total_tokens: int = Field(0, alias="totalTokens")
    api_cost: float = Field(0.0, alias="apiCost")
    estimated_cost: float = Field(0.0, alias="estimatedCost")
    assistant_message_count: int = Field(0, alias="assistantMessageCount")


class SubagentAnalysis(BaseModel):
    """Every descendant of a session, flattened in depth-first order, with totals"""
    model_config = ConfigDict(populate_by_name=True)

    subagents: List[SubagentSummary] = Field(default_factory=list)
    total_input_tokens: int = Field(0, alias="totalInputTokens")
    total_output_tokens: int = Field(0, alias="totalOutputTokens")
    total_reasoning_tokens: int = Field(0, alias="totalReasoningTokens")
    total_cache_read_tokens: int = Field(0, alias="totalCacheReadTokens")
    total_cache_write_tokens: int = Field(0, alias="totalCacheWriteTokens")
    total_tokens: int = Field(0, alias="totalTokens")
    total_api_cost: float = Field(0.0, alias="totalApiCost")
    total_estimated_cost: float = Field(0.0, alias="totalEstimatedCost")
    total_api_calls: int = Field(0, alias="totalApiCalls")
    truncated: bool = Field(False, description="Traversal stopped at the session cap")

    def add(self, summary: SubagentSummary) -> None:
        """Append a summary and fold it into the totals"""
        self.subagents.append(summary)
        self.total_input_tokens += summary.input_tokens
        self.total_output_tokens += summary.output_tokens
        self.total_reasoning_tokens += summary.reasoning_tokens
        self.total_cache_read_tokens += summary.cache_read_tokens
        self.total_cache_write_tokens += summary.cache_write_tokens
        self.total_tokens += summary.total_tokens
        self.total_api_cost += summary.api_cost
        self.total_estimated_cost += summary.estimated_cost
        self.total_api_calls += summary.assistant_message_count
