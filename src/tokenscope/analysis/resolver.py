"""Model and provider resolution for tokenizer selection."""

import logging
from typing import Dict, List, Optional

from tokenscope.sessions.models import Message
from tokenscope.tokenizer.models import (
    APPROX_MODEL,
    TiktokenSpec,
    TokenModel,
    TransformersSpec,
)
from .models import ResolvedModel

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_ID = "anthropic"
DEFAULT_MODEL_ID = "claude-sonnet-4-20250514"

CLAUDE_TOKENIZER = "Xenova/claude-tokenizer"
LLAMA_TOKENIZER = "Xenova/Meta-Llama-3.1-Tokenizer"
MISTRAL_TOKENIZER = "Xenova/mistral-tokenizer-v3"
DEEPSEEK_TOKENIZER = "deepseek-ai/DeepSeek-V3"

# Providers whose models are all counted with tiktoken
OPENAI_COMPATIBLE_PROVIDERS = frozenset({"openai", "opencode", "azure"})

# Model id -> tiktoken model alias
OPENAI_MODEL_MAP: Dict[str, str] = {
    "gpt-5": "gpt-4o",
    "o4-mini": "gpt-4o",
    "o3": "gpt-4o",
    "o3-mini": "gpt-4o",
    "o1": "gpt-4o",
    "o1-pro": "gpt-4o",
    "gpt-4.1": "gpt-4o",
    "gpt-4.1-mini": "gpt-4o",
    "gpt-4o": "gpt-4o",
    "gpt-4o-mini": "gpt-4o-mini",
    "gpt-4-turbo": "gpt-4",
    "gpt-4": "gpt-4",
    "gpt-3.5-turbo": "gpt-3.5-turbo",
    "text-embedding-3-large": "text-embedding-3-large",
    "text-embedding-3-small": "text-embedding-3-small",
    "text-embedding-ada-002": "text-embedding-ada-002",
}

# Model id -> Hugging Face hub id
TRANSFORMERS_MODEL_MAP: Dict[str, str] = {
    "claude-opus-4": CLAUDE_TOKENIZER,
    "claude-sonnet-4": CLAUDE_TOKENIZER,
    "claude-3.7-sonnet": CLAUDE_TOKENIZER,
    "claude-3.5-sonnet": CLAUDE_TOKENIZER,
    "claude-3.5-haiku": CLAUDE_TOKENIZER,
    "claude-3-opus": CLAUDE_TOKENIZER,
    "claude-3-sonnet": CLAUDE_TOKENIZER,
    "claude-3-haiku": CLAUDE_TOKENIZER,
    "claude-2.1": CLAUDE_TOKENIZER,
    "claude-2.0": CLAUDE_TOKENIZER,
    "claude-instant-1.2": CLAUDE_TOKENIZER,
    "llama-4": "Xenova/llama4-tokenizer",
    "llama-3.3": "unsloth/Llama-3.3-70B-Instruct",
    "llama-3.2": "Xenova/Llama-3.2-Tokenizer",
    "llama-3.1": LLAMA_TOKENIZER,
    "llama-3": "Xenova/llama3-tokenizer-new",
    "llama-2": "Xenova/llama2-tokenizer",
    "code-llama": "Xenova/llama-code-tokenizer",
    "deepseek-r1": "deepseek-ai/DeepSeek-R1",
    "deepseek-v3": DEEPSEEK_TOKENIZER,
    "deepseek-v2": "deepseek-ai/DeepSeek-V2",
    "mistral-large": MISTRAL_TOKENIZER,
    "mistral-small": MISTRAL_TOKENIZER,
    "mistral-nemo": "Xenova/Mistral-Nemo-Instruct-Tokenizer",
    "devstral-small": "Xenova/Mistral-Nemo-Instruct-Tokenizer",
    "codestral": MISTRAL_TOKENIZER,
}

# Provider -> default Hugging Face hub id
PROVIDER_DEFAULTS: Dict[str, str] = {
    "anthropic": CLAUDE_TOKENIZER,
    "meta": LLAMA_TOKENIZER,
    "mistral": MISTRAL_TOKENIZER,
    "deepseek": DEEPSEEK_TOKENIZER,
    "google": "google/gemma-2-9b-it",
}

# Model id prefix -> Hugging Face hub id, checked in order
PREFIX_DEFAULTS = (
    ("claude", CLAUDE_TOKENIZER),
    ("llama", LLAMA_TOKENIZER),
    ("mistral", MISTRAL_TOKENIZER),
    ("deepseek", DEEPSEEK_TOKENIZER),
)


def canonicalize(value: Optional[str]) -> Optional[str]:
    """Strip any namespace prefix and lowercase: 'Vendor/Model' -> 'model'"""
    if not value:
        return None
    canonical = value.split("/")[-1].strip().lower()
    return canonical or None


class ModelResolver:
    """
    Resolves the tokenizer strategy for a transcript.

    The most recent message carrying both a provider and a model id decides,
    and the resulting strategy is applied to the whole transcript.
    """

    def resolve(self, messages: List[Message]) -> ResolvedModel:
        """Pick the (provider, model) pair and map it to a tokenizer strategy."""
        provider_id: Optional[str] = None
        model_id: Optional[str] = None

        for message in reversed(messages):
            provider = canonicalize(message.provider_id)
            model = message.model_id.strip() if message.model_id else None
            if provider:
                provider_id = provider
            if model:
                model_id = model
            if provider and model:
                break

        if provider_id is None and model_id is None:
            logger.debug("No provider or model reported in transcript, using approximate counts")
            token_model = APPROX_MODEL
        else:
            token_model = self.resolve_token_model(provider_id, model_id)

        return ResolvedModel(
            model=token_model,
            provider_id=provider_id or DEFAULT_PROVIDER_ID,
            model_id=model_id or DEFAULT_MODEL_ID,
        )

    def resolve_token_model(self, provider_id: Optional[str], model_id: Optional[str]) -> TokenModel:
        """
        Map a provider/model pair to a tokenizer strategy.

        Priority order (first match wins):
        1. OpenAI-compatible provider -> tiktoken for the model
        2. Exact model id -> tiktoken or Hugging Face table
        3. Provider -> provider default tokenizer
        4. Model id prefix -> family tokenizer
        5. Approximation
        """
        provider = canonicalize(provider_id)
        model = canonicalize(model_id)
        name = model or provider or APPROX_MODEL.name

        # 1. Provider + model
        if provider in OPENAI_COMPATIBLE_PROVIDERS:
            alias = OPENAI_MODEL_MAP.get(model, model) if model else "cl100k_base"
            return TokenModel(name=name, spec=TiktokenSpec(model=alias))

        # 2. Exact model id
        if model in OPENAI_MODEL_MAP:
            return TokenModel(name=name, spec=TiktokenSpec(model=OPENAI_MODEL_MAP[model]))
        if model in TRANSFORMERS_MODEL_MAP:
            return TokenModel(name=name, spec=TransformersSpec(hub=TRANSFORMERS_MODEL_MAP[model]))

        # 3. Provider default
        if provider in PROVIDER_DEFAULTS:
            return TokenModel(name=name, spec=TransformersSpec(hub=PROVIDER_DEFAULTS[provider]))

        # 4. Family prefix
        if model:
            for prefix, hub in PREFIX_DEFAULTS:
                if model.startswith(prefix):
                    return TokenModel(name=name, spec=TransformersSpec(hub=hub))

        # 5. Approximation
        logger.debug(f"No tokenizer mapping for provider={provider} model={model}, approximating")
        return TokenModel(name=name, spec=APPROX_MODEL.spec)
