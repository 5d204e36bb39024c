"""Cached context composition, tool schema estimates and cache efficiency"""

from .models import (
    CacheEfficiency,
    ContextAnalysisResult,
    ContextBreakdown,
    ContextComponent,
    CustomInstructionsComponent,
    EnvironmentComponent,
    ProjectTreeComponent,
    ToolDefinitionsComponent,
    ToolSchemaEstimate,
)
from .analyzer import ContextAnalyzer

__all__ = [
    "CacheEfficiency",
    "ContextAnalysisResult",
    "ContextBreakdown",
    "ContextComponent",
    "CustomInstructionsComponent",
    "EnvironmentComponent",
    "ProjectTreeComponent",
    "ToolDefinitionsComponent",
    "ToolSchemaEstimate",
    "ContextAnalyzer",
]
