"""Transcript analysis

This module handles:
- Resolving the tokenizer strategy from the transcript's provider/model
- Collecting categorized content spans
- Building category summaries reconciled with provider telemetry
"""

from .models import (
    CategoryBreakdown,
    CategoryEntry,
    CategoryEntrySource,
    CategorySummary,
    ResolvedModel,
    TokenAnalysis,
)
from .resolver import ModelResolver, canonicalize
from .collector import ContentCollector
from .engine import TokenAnalysisEngine

__all__ = [
    "CategoryBreakdown",
    "CategoryEntry",
    "CategoryEntrySource",
    "CategorySummary",
    "ResolvedModel",
    "TokenAnalysis",
    "ModelResolver",
    "canonicalize",
    "ContentCollector",
    "TokenAnalysisEngine",
]
