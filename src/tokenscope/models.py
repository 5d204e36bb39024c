"""Top-level session report model"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tokenscope.analysis.models import TokenAnalysis
from tokenscope.context.models import CacheEfficiency, ContextBreakdown, ToolSchemaEstimate
from tokenscope.costs.models import CostEstimate
from tokenscope.skills.models import SkillAnalysis
from tokenscope.subagents.models import SubagentAnalysis


class SessionReport(BaseModel):
    """
    Everything known about a session's token usage and cost.

    Optional sections are None when disabled in the config; a section whose
    collaborator failed holds its empty default. Built per request, never stored.
    """
    model_config = ConfigDict(populate_by_name=True)

    provider_id: str = Field(..., alias="providerID")
    model_id: str = Field(..., alias="modelID")
    analysis: TokenAnalysis
    cost: CostEstimate
    context_breakdown: Optional[ContextBreakdown] = Field(None, alias="contextBreakdown")
    tool_estimates: Optional[List[ToolSchemaEstimate]] = Field(None, alias="toolEstimates")
    cache_efficiency: Optional[CacheEfficiency] = Field(None, alias="cacheEfficiency")
    skill_analysis: Optional[SkillAnalysis] = Field(None, alias="skillAnalysis")
    subagent_analysis: Optional[SubagentAnalysis] = Field(None, alias="subagentAnalysis")
    grand_total_tokens: int = Field(0, alias="grandTotalTokens", description="Main session plus subagents")
