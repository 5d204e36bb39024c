"""Cached context composition models"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContextComponent(BaseModel):
    """One bucket of the cached context"""
    tokens: int = 0
    identified: bool = Field(False, description="True when parsed from raw prompt text, False when estimated")


class ToolDefinitionsComponent(ContextComponent):
    model_config = ConfigDict(populate_by_name=True)

    tool_count: int = Field(0, alias="toolCount")


class EnvironmentComponent(ContextComponent):
    components: List[str] = Field(default_factory=list)


class ProjectTreeComponent(ContextComponent):
    model_config = ConfigDict(populate_by_name=True)

    file_count: int = Field(0, alias="fileCount")


class CustomInstructionsComponent(ContextComponent):
    sources: List[str] = Field(default_factory=list)


class ContextBreakdown(BaseModel):
    """Composition of the cached context window"""
    model_config = ConfigDict(populate_by_name=True)

    base_system_prompt: ContextComponent = Field(default_factory=ContextComponent, alias="baseSystemPrompt")
    tool_definitions: ToolDefinitionsComponent = Field(
        default_factory=ToolDefinitionsComponent,
        alias="toolDefinitions"
    )
    environment_context: EnvironmentComponent = Field(
        default_factory=EnvironmentComponent,
        alias="environmentContext"
    )
    project_tree: ProjectTreeComponent = Field(default_factory=ProjectTreeComponent, alias="projectTree")
    custom_instructions: CustomInstructionsComponent = Field(
        default_factory=CustomInstructionsComponent,
        alias="customInstructions"
    )
    total_cached_context: int = Field(0, alias="totalCachedContext", description="Sum of bucket tokens")

    def bucket_sum(self) -> int:
        return (
            self.base_system_prompt.tokens
            + self.tool_definitions.tokens
            + self.environment_context.tokens
            + self.project_tree.tokens
            + self.custom_instructions.tokens
        )


class ToolSchemaEstimate(BaseModel):
    """Estimated definition cost of one enabled tool"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    estimated_tokens: int = Field(..., alias="estimatedTokens")
    argument_count: int = Field(..., alias="argumentCount")
    has_complex_args: bool = Field(..., alias="hasComplexArgs")


class CacheEfficiency(BaseModel):
    """Prompt cache effect on input cost"""
    model_config = ConfigDict(populate_by_name=True)

    cache_read_tokens: int = Field(0, alias="cacheReadTokens")
    fresh_input_tokens: int = Field(0, alias="freshInputTokens")
    cache_write_tokens: int = Field(0, alias="cacheWriteTokens")
    total_input_tokens: int = Field(0, alias="totalInputTokens")
    cache_hit_rate: float = Field(0.0, alias="cacheHitRate", description="cache read / total input, 0..1")
    cost_without_caching: float = Field(0.0, alias="costWithoutCaching")
    cost_with_caching: float = Field(0.0, alias="costWithCaching")
    cost_savings: float = Field(0.0, alias="costSavings")
    savings_percent: float = Field(0.0, alias="savingsPercent")
    effective_rate: float = Field(0.0, alias="effectiveRate", description="Blended USD per million input tokens")
    standard_rate: float = Field(0.0, alias="standardRate", description="Input price per million tokens")


class ContextAnalysisResult(BaseModel):
    """Sections produced from a full session export; each is None when disabled or unavailable"""
    model_config = ConfigDict(populate_by_name=True)

    context_breakdown: Optional[ContextBreakdown] = Field(None, alias="contextBreakdown")
    tool_estimates: Optional[List[ToolSchemaEstimate]] = Field(None, alias="toolEstimates")
    cache_efficiency: Optional[CacheEfficiency] = Field(None, alias="cacheEfficiency")
