"""
Tokenizer backend registry.

Each backend wraps one optional tokenizer library behind the same three
operations:
- is_available(): whether the library is importable
- load(key): build an encoder for a model alias / hub id (slow, blocking)
- count(encoder, text): number of tokens for text

A missing library is reported as BackendUnavailableError from load().
"""

import importlib
import importlib.util
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from tokenscope.errors import BackendUnavailableError
from .models import TiktokenSpec, TransformersSpec

logger = logging.getLogger(__name__)

TIKTOKEN_FALLBACK_ENCODING = "cl100k_base"


class TokenizerBackend(ABC):
    """A named tokenizer strategy"""

    name: str = ""
    module_name: str = ""

    def is_available(self) -> bool:
        """Whether the backing library is installed"""
        return importlib.util.find_spec(self.module_name) is not None

    def _import(self) -> Any:
        if not self.is_available():
            raise BackendUnavailableError(
                f"Tokenizer backend '{self.name}' is not installed",
                detail=f"Install the '{self.module_name}' package to enable exact counting",
            )
        return importlib.import_module(self.module_name)

    @abstractmethod
    def load(self, key: str) -> Any:
        """Build an encoder for key. Blocking; call from a worker thread."""

    @abstractmethod
    def count(self, encoder: Any, text: str) -> int:
        """Count tokens of text with a loaded encoder."""


class TiktokenBackend(TokenizerBackend):
    """OpenAI tiktoken encodings"""

    name = "tiktoken"
    module_name = "tiktoken"

    def load(self, key: str) -> Any:
        tiktoken = self._import()
        try:
            return tiktoken.encoding_for_model(key)
        except KeyError:
            logger.debug(f"No tiktoken encoding for model '{key}', using {TIKTOKEN_FALLBACK_ENCODING}")
            return tiktoken.get_encoding(TIKTOKEN_FALLBACK_ENCODING)

    def count(self, encoder: Any, text: str) -> int:
        # Special-token text in transcripts is counted as ordinary text
        tokens = encoder.encode(text, disallowed_special=())
        return len(tokens)


class HuggingFaceBackend(TokenizerBackend):
    """Hugging Face tokenizers loaded from the hub"""

    name = "huggingface"
    module_name = "tokenizers"

    def load(self, key: str) -> Any:
        tokenizers = self._import()
        return tokenizers.Tokenizer.from_pretrained(key)

    def count(self, encoder: Any, text: str) -> int:
        encoding = encoder.encode(text, add_special_tokens=False)
        ids = getattr(encoding, "ids", None)
        if ids is None:
            raise ValueError(f"Unexpected encode result: {type(encoding).__name__}")
        return len(ids)


BACKEND_REGISTRY: Dict[str, TokenizerBackend] = {
    "tiktoken": TiktokenBackend(),
    "transformers": HuggingFaceBackend(),
}


def get_backend(
    spec: Any,
    registry: Optional[Dict[str, TokenizerBackend]] = None
) -> Optional[TokenizerBackend]:
    """
    Select the backend for a tokenizer spec.

    Returns None for the approximation strategy (no backend needed).
    """
    registry = registry if registry is not None else BACKEND_REGISTRY
    return registry.get(getattr(spec, "kind", "approx"))


def backend_key(spec: Any) -> Optional[str]:
    """Cache key of a spec inside its backend (model alias or hub id)"""
    if isinstance(spec, TiktokenSpec):
        return spec.model
    if isinstance(spec, TransformersSpec):
        return spec.hub
    return None
