"""Tokenizer strategies and token counting

This module handles:
- Tokenizer strategy models (approx, tiktoken, Hugging Face)
- The backend registry for optional tokenizer libraries
- Memoized, coalesced encoder loading with graceful degradation
"""

from .models import (
    APPROX_MODEL,
    ApproxSpec,
    TiktokenSpec,
    TokenizerSpec,
    TokenModel,
    TransformersSpec,
)
from .backends import (
    BACKEND_REGISTRY,
    HuggingFaceBackend,
    TiktokenBackend,
    TokenizerBackend,
    get_backend,
)
from .manager import TokenizerManager

__all__ = [
    "APPROX_MODEL",
    "ApproxSpec",
    "TiktokenSpec",
    "TokenizerSpec",
    "TokenModel",
    "TransformersSpec",
    "BACKEND_REGISTRY",
    "HuggingFaceBackend",
    "TiktokenBackend",
    "TokenizerBackend",
    "get_backend",
    "TokenizerManager",
]
