"""
Cached context analysis from a full session export.

Two ways of splitting the cached context into buckets:
- Exact: raw system prompts are present on assistant messages; each structural
  block (<env>, <files>, <functions>, "Instructions from:") is tokenized.
- Estimate: only telemetry is present; the first cache write is apportioned
  with fixed per-bucket constants.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from tokenscope.config import TokenscopeConfig
from tokenscope.costs.models import ModelPricing
from tokenscope.sessions.client import SessionClient
from tokenscope.sessions.models import ExportedSession, Message, ToolPart
from tokenscope.tokenizer.manager import TokenizerManager
from tokenscope.tokenizer.models import TokenModel
from .models import (
    CacheEfficiency,
    ContextAnalysisResult,
    ContextBreakdown,
    ToolSchemaEstimate,
)

logger = logging.getLogger(__name__)

# Estimate path constants (tokens)
PER_TOOL_TOKENS = 350
ENVIRONMENT_TOKENS = 150
PROJECT_TREE_TOKENS = 500
STANDARD_ENVIRONMENT_COMPONENTS = ("working-dir", "platform", "git-status", "date")

# Unmatched prompt text shorter than this is not attributed to the base prompt
BASE_PROMPT_MIN_CHARS = 500

# Tool schema estimation (tokens)
SCHEMA_BASE_TOKENS = 200
SIMPLE_ARG_TOKENS = 30
COMPLEX_ARG_TOKENS = 60
SIMPLE_DESCRIPTION_TOKENS = 80
COMPLEX_DESCRIPTION_TOKENS = 120
# Unobserved tool: three simple args plus one complex arg, simple description
DEFAULT_ARG_COUNT = 3
DEFAULT_SCHEMA_TOKENS = (
    SCHEMA_BASE_TOKENS
    + DEFAULT_ARG_COUNT * SIMPLE_ARG_TOKENS
    + COMPLEX_ARG_TOKENS
    + SIMPLE_DESCRIPTION_TOKENS
)  # 430

ENV_BLOCK = re.compile(r"<env>[\s\S]*?</env>", re.IGNORECASE)
FILES_BLOCK = re.compile(r"<files>[\s\S]*?</files>", re.IGNORECASE)
FUNCTIONS_BLOCK = re.compile(r"<functions>[\s\S]*?</functions>", re.IGNORECASE)
INSTRUCTIONS_BLOCK = re.compile(
    r"Instructions from:[\s\S]*?(?=Instructions from:|<env>|<files>|<functions>|\Z)",
    re.IGNORECASE
)
INSTRUCTIONS_SOURCE = re.compile(r"Instructions from:\s*([^\n]+)", re.IGNORECASE)
FILE_LINE = re.compile(r"\n\s+[\w\-.]+\.[a-z]{1,5}")
FUNCTION_TAG = re.compile(r"<function>", re.IGNORECASE)
JSON_SCHEMA_MARKER = '"type": "object"'

# Substring -> component name, checked inside the <env> block
ENVIRONMENT_MARKERS = (
    ("working directory:", "working-dir"),
    ("platform:", "platform"),
    ("git repo", "git-status"),
    ("date:", "date"),
)

IDENTITY_PHRASES = ("you are opencode", "you are claude", "you are an ", "you are a ")


def has_identity_phrase(text: str) -> bool:
    """Whether text reads like the opening of a base system prompt"""
    lower = text.lower()
    if any(phrase in lower for phrase in IDENTITY_PHRASES):
        return True
    return "assistant" in lower and "software engineering" in lower


def _outside_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    """Text not covered by any (start, end) span, pieces joined by newlines."""
    pieces = []
    cursor = 0
    for start, end in sorted(spans):
        if start > cursor:
            pieces.append(text[cursor:start])
        cursor = max(cursor, end)
    pieces.append(text[cursor:])
    return "\n".join(piece.strip() for piece in pieces if piece.strip())


class ContextAnalyzer:
    """Breaks the cached context of a session into buckets"""

    def __init__(
        self,
        client: SessionClient,
        tokenizer_manager: TokenizerManager,
        config: TokenscopeConfig
    ):
        self.client = client
        self.tokenizer_manager = tokenizer_manager
        self.config = config

    async def analyze(
        self,
        session_id: str,
        token_model: TokenModel,
        pricing: ModelPricing
    ) -> ContextAnalysisResult:
        """
        Analyze the session export.

        Returns an empty result when the export fails, times out, or the host
        has none. Each section is produced only when enabled in the config.
        """
        result = ContextAnalysisResult()

        exported = await self._export(session_id)
        if exported is None:
            return result

        if self.config.enable_context_breakdown:
            result.context_breakdown = await self.analyze_context_breakdown(exported, token_model)

        if self.config.enable_tool_schema_estimation:
            result.tool_estimates = self.estimate_tool_schemas(exported.messages)

        if self.config.enable_cache_efficiency:
            result.cache_efficiency = self.calculate_cache_efficiency(exported.messages, pricing)

        return result

    async def _export(self, session_id: str) -> Optional[ExportedSession]:
        try:
            coro = self.client.export_session(session_id)
            if self.config.collaborator_timeout is None:
                exported = await coro
            else:
                exported = await asyncio.wait_for(coro, self.config.collaborator_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Session export timed out for {session_id}")
            return None
        except Exception as e:
            logger.error(f"Session export failed for {session_id}: {e}", exc_info=True)
            return None

        if exported is None:
            logger.info(f"No session export available for {session_id}")
        return exported

    async def analyze_context_breakdown(
        self,
        exported: ExportedSession,
        token_model: TokenModel
    ) -> ContextBreakdown:
        """Exact breakdown when raw prompts are exported, otherwise the estimate"""
        prompts = self.extract_system_prompts(exported.messages)
        if prompts:
            return await self.analyze_system_prompts(prompts, token_model)
        return self.estimate_from_cache_write(exported.messages)

    @staticmethod
    def extract_system_prompts(messages: List[Message]) -> List[str]:
        """Distinct raw system prompts of assistant calls, first-seen order"""
        prompts: Dict[str, None] = {}
        for message in messages:
            if message.role != "assistant":
                continue
            for prompt in message.system:
                trimmed = prompt.strip()
                if trimmed:
                    prompts.setdefault(trimmed, None)
        return list(prompts)

    async def analyze_system_prompts(self, prompts: List[str], token_model: TokenModel) -> ContextBreakdown:
        """
        Tokenize the structural blocks of each prompt into their buckets.

        Text outside every block goes to the base prompt when it carries an
        identity phrase (identified) or is longer than BASE_PROMPT_MIN_CHARS
        (estimated). Shorter unmatched text is dropped.
        """
        breakdown = ContextBreakdown()
        count = self.tokenizer_manager.count_tokens

        for prompt in prompts:
            lower = prompt.lower()
            functions = FUNCTIONS_BLOCK.search(prompt)

            if functions is None and JSON_SCHEMA_MARKER in lower:
                # Bare JSON schemas: the whole prompt is tool definitions
                breakdown.tool_definitions.tokens += await count(prompt, token_model)
                breakdown.tool_definitions.identified = True
                continue

            spans: List[Tuple[int, int]] = []

            env = ENV_BLOCK.search(prompt)
            if env:
                spans.append(env.span())
                component = breakdown.environment_context
                component.tokens += await count(env.group(0), token_model)
                component.identified = True
                env_lower = env.group(0).lower()
                for marker, name in ENVIRONMENT_MARKERS:
                    if marker in env_lower and name not in component.components:
                        component.components.append(name)

            files = FILES_BLOCK.search(prompt)
            if files:
                spans.append(files.span())
                tree = breakdown.project_tree
                tree.tokens += await count(files.group(0), token_model)
                tree.identified = True
                tree.file_count += len(FILE_LINE.findall(files.group(0)))

            if functions:
                spans.append(functions.span())
                tools = breakdown.tool_definitions
                tools.tokens += await count(functions.group(0), token_model)
                tools.identified = True
                tools.tool_count += len(FUNCTION_TAG.findall(functions.group(0)))

            for match in INSTRUCTIONS_BLOCK.finditer(prompt):
                spans.append(match.span())
                instructions = breakdown.custom_instructions
                instructions.tokens += await count(match.group(0), token_model)
                instructions.identified = True
                source = INSTRUCTIONS_SOURCE.search(match.group(0))
                if source:
                    path = source.group(1).strip()
                    if path and path not in instructions.sources:
                        instructions.sources.append(path)

            remainder = _outside_spans(prompt, spans)
            if not remainder:
                continue
            if has_identity_phrase(remainder):
                breakdown.base_system_prompt.tokens += await count(remainder, token_model)
                breakdown.base_system_prompt.identified = True
            elif len(remainder) > BASE_PROMPT_MIN_CHARS:
                breakdown.base_system_prompt.tokens += await count(remainder, token_model)

        breakdown.total_cached_context = breakdown.bucket_sum()
        return breakdown

    def estimate_from_cache_write(self, messages: List[Message]) -> ContextBreakdown:
        """
        Apportion the first cache write over the buckets with fixed constants.

        Buckets are filled in order (tools, environment, tree) and each is
        capped at what is left of the total, so the base prompt gets the
        remainder and the buckets always add up to the total.
        """
        breakdown = ContextBreakdown()

        total = 0
        for message in messages:
            if message.role == "assistant" and message.usage.cache_write > 0:
                total = message.usage.cache_write
                break

        if total == 0:
            return breakdown

        tool_count = len(self.extract_enabled_tools(messages))
        remaining = total

        tool_tokens = min(tool_count * PER_TOOL_TOKENS, remaining)
        remaining -= tool_tokens
        env_tokens = min(ENVIRONMENT_TOKENS, remaining)
        remaining -= env_tokens
        tree_tokens = min(PROJECT_TREE_TOKENS, remaining)
        remaining -= tree_tokens

        breakdown.tool_definitions.tokens = tool_tokens
        breakdown.tool_definitions.tool_count = tool_count
        breakdown.environment_context.tokens = env_tokens
        breakdown.environment_context.components = list(STANDARD_ENVIRONMENT_COMPONENTS)
        breakdown.project_tree.tokens = tree_tokens
        breakdown.base_system_prompt.tokens = remaining
        breakdown.total_cached_context = total

        logger.debug(f"Estimated context breakdown from cache write of {total} tokens ({tool_count} tools)")
        return breakdown

    @staticmethod
    def extract_enabled_tools(messages: List[Message]) -> List[str]:
        """
        Names of enabled tools.

        Tool maps are merged across messages (later entries win). Without any
        map, every tool seen in a tool part counts as enabled.
        """
        tools: Dict[str, bool] = {}
        for message in messages:
            tools.update(message.tools)

        if not tools:
            for message in messages:
                for part in message.parts:
                    if isinstance(part, ToolPart) and part.tool:
                        tools[part.tool] = True

        return [name for name, enabled in tools.items() if enabled]

    def estimate_tool_schemas(self, messages: List[Message]) -> List[ToolSchemaEstimate]:
        """Schema token estimate per enabled tool, largest first"""
        observed = self._observed_arguments(messages)

        estimates = [
            self.estimate_tool_tokens(name, observed.get(name))
            for name in self.extract_enabled_tools(messages)
        ]
        return sorted(estimates, key=lambda estimate: estimate.estimated_tokens, reverse=True)

    @staticmethod
    def estimate_tool_tokens(name: str, calls: Optional[List[Dict[str, Any]]]) -> ToolSchemaEstimate:
        """
        Estimate one tool's schema cost from the arguments of its observed calls.

        An argument is complex when any call passed it a list or an object.
        Without observed calls, returns the fixed DEFAULT_SCHEMA_TOKENS (430)
        for a three-argument tool flagged as complex.
        """
        if not calls:
            return ToolSchemaEstimate(
                name=name,
                estimated_tokens=DEFAULT_SCHEMA_TOKENS,
                argument_count=DEFAULT_ARG_COUNT,
                has_complex_args=True,
            )

        arg_names: Dict[str, None] = {}
        complex_args = set()
        for arguments in calls:
            for arg, value in arguments.items():
                arg_names.setdefault(arg, None)
                if isinstance(value, (list, dict)):
                    complex_args.add(arg)
        complex_count = len(complex_args)
        simple = len(arg_names) - complex_count

        has_complex = complex_count > 0
        tokens = (
            SCHEMA_BASE_TOKENS
            + simple * SIMPLE_ARG_TOKENS
            + complex_count * COMPLEX_ARG_TOKENS
            + (COMPLEX_DESCRIPTION_TOKENS if has_complex else SIMPLE_DESCRIPTION_TOKENS)
        )
        return ToolSchemaEstimate(
            name=name,
            estimated_tokens=tokens,
            argument_count=simple + complex_count,
            has_complex_args=has_complex,
        )

    @staticmethod
    def _observed_arguments(messages: List[Message]) -> Dict[str, List[Dict[str, Any]]]:
        calls: Dict[str, List[Dict[str, Any]]] = {}
        for message in messages:
            for part in message.parts:
                if isinstance(part, ToolPart) and part.tool and part.state.input is not None:
                    calls.setdefault(part.tool, []).append(part.state.input)
        return calls

    @staticmethod
    def calculate_cache_efficiency(messages: List[Message], pricing: ModelPricing) -> CacheEfficiency:
        """Cache hit rate and the input cost saved by prompt caching"""
        cache_read = 0
        fresh_input = 0
        cache_write = 0

        for message in messages:
            if message.role == "assistant" and message.tokens is not None:
                cache_read += message.tokens.cache_read
                fresh_input += message.tokens.input
                cache_write += message.tokens.cache_write

        total_input = cache_read + fresh_input
        cost_without = (total_input / 1_000_000) * pricing.input
        cost_with = (fresh_input / 1_000_000) * pricing.input + (cache_read / 1_000_000) * pricing.cache_read
        savings = cost_without - cost_with

        return CacheEfficiency(
            cache_read_tokens=cache_read,
            fresh_input_tokens=fresh_input,
            cache_write_tokens=cache_write,
            total_input_tokens=total_input,
            cache_hit_rate=cache_read / total_input if total_input > 0 else 0.0,
            cost_without_caching=cost_without,
            cost_with_caching=cost_with,
            cost_savings=savings,
            savings_percent=(savings / cost_without) * 100 if cost_without > 0 else 0.0,
            effective_rate=(cost_with / total_input) * 1_000_000 if total_input > 0 else 0.0,
            standard_rate=pricing.input,
        )
