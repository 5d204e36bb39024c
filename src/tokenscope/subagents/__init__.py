"""Subagent (child session) usage roll-up"""

from .models import SubagentAnalysis, SubagentSummary
from .analyzer import SubagentAnalyzer, extract_agent_type

__all__ = [
    "SubagentAnalysis",
    "SubagentSummary",
    "SubagentAnalyzer",
    "extract_agent_type",
]
