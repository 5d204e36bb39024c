"""Token analysis engine: category summaries reconciled with provider telemetry."""

import asyncio
import logging
from typing import List, Optional

from tokenscope.sessions.models import Message
from tokenscope.tokenizer.manager import TokenizerManager
from tokenscope.tokenizer.models import TokenModel
from .collector import ContentCollector
from .models import (
    CategoryBreakdown,
    CategoryEntry,
    CategoryEntrySource,
    CategorySummary,
    TokenAnalysis,
)

logger = logging.getLogger(__name__)

INFERRED_SYSTEM_LABEL = "System (inferred from API)"


class TokenAnalysisEngine:
    """Builds a TokenAnalysis from a transcript"""

    def __init__(self, tokenizer_manager: TokenizerManager, content_collector: ContentCollector):
        self.tokenizer_manager = tokenizer_manager
        self.content_collector = content_collector

    async def analyze(
        self,
        session_id: str,
        messages: List[Message],
        token_model: TokenModel,
        entry_limit: int
    ) -> TokenAnalysis:
        """
        Tokenize every category and reconcile against telemetry.

        Args:
            session_id: Session identifier
            messages: Ordered transcript
            token_model: Tokenizer strategy applied to the whole transcript
            entry_limit: Number of top entries kept per category

        Returns:
            TokenAnalysis with categories, session totals and the most recent call
        """
        collector = self.content_collector

        system, user, assistant, tools, reasoning = await asyncio.gather(
            self.build_category("system", collector.collect_system_prompts(messages), token_model, entry_limit),
            self.build_category("user", collector.collect_message_texts(messages, "user"), token_model, entry_limit),
            self.build_category(
                "assistant", collector.collect_message_texts(messages, "assistant"), token_model, entry_limit
            ),
            self.build_category("tools", collector.collect_tool_outputs(messages), token_model, entry_limit),
            self.build_category(
                "reasoning", collector.collect_reasoning_texts(messages), token_model, entry_limit
            ),
        )

        analysis = TokenAnalysis(
            session_id=session_id,
            model=token_model,
            categories=CategoryBreakdown(
                system=system,
                user=user,
                assistant=assistant,
                tools=tools,
                reasoning=reasoning,
            ),
            all_tools_called=collector.collect_all_tools_called(messages),
            tool_call_counts=collector.collect_tool_call_counts(messages),
        )

        self.apply_telemetry(analysis, messages)
        logger.debug(
            f"Analyzed session {session_id}: {analysis.total_tokens} tokens "
            f"over {analysis.assistant_message_count} API calls"
        )
        return analysis

    async def build_category(
        self,
        label: str,
        sources: List[CategoryEntrySource],
        token_model: TokenModel,
        entry_limit: int
    ) -> CategorySummary:
        """Tokenize sources concurrently; keep all entries and the top entry_limit."""
        counts = await asyncio.gather(
            *[self.tokenizer_manager.count_tokens(source.content, token_model) for source in sources]
        )

        entries = [
            CategoryEntry(label=source.label, tokens=tokens)
            for source, tokens in zip(sources, counts)
            if tokens > 0
        ]
        # sorted() is stable: ties keep transcript order
        entries = sorted(entries, key=lambda entry: entry.tokens, reverse=True)

        return CategorySummary(
            label=label,
            total_tokens=sum(entry.tokens for entry in entries),
            entries=entries[:max(0, entry_limit)],
            all_entries=entries,
        )

    def apply_telemetry(self, analysis: TokenAnalysis, messages: List[Message]) -> None:
        """
        Fill session totals and the most recent call from assistant telemetry.

        When no system prompt text was found locally but the provider reported
        input for the most recent call, the system category is inferred as the
        reported input (fresh + cache read) minus the locally counted user and
        tool tokens.
        """
        calls = [m for m in messages if m.role == "assistant" and m.has_telemetry]

        for message in calls:
            usage = message.usage
            analysis.input_tokens += usage.input
            analysis.output_tokens += usage.output
            analysis.reasoning_tokens += usage.reasoning
            analysis.cache_read_tokens += usage.cache_read
            analysis.cache_write_tokens += usage.cache_write
            analysis.session_cost += message.cost_or_zero
        analysis.assistant_message_count = len(calls)

        recent = self._most_recent_call(calls)
        if recent is not None:
            usage = recent.usage
            analysis.most_recent_input = usage.input
            analysis.most_recent_output = usage.output
            analysis.most_recent_reasoning = usage.reasoning
            analysis.most_recent_cache_read = usage.cache_read
            analysis.most_recent_cache_write = usage.cache_write
            analysis.most_recent_cost = recent.cost_or_zero

        categories = analysis.categories
        if categories.system.total_tokens == 0:
            reported_input = analysis.most_recent_input + analysis.most_recent_cache_read
            local_tokens = categories.user.total_tokens + categories.tools.total_tokens
            inferred = max(0, reported_input - local_tokens)
            if inferred > 0:
                entry = CategoryEntry(label=INFERRED_SYSTEM_LABEL, tokens=inferred)
                categories.system = CategorySummary(
                    label="system",
                    total_tokens=inferred,
                    entries=[entry],
                    all_entries=[entry],
                )

        analysis.total_tokens = categories.total_tokens

    @staticmethod
    def _most_recent_call(calls: List[Message]) -> Optional[Message]:
        """Newest call with nonzero usage, else the newest call."""
        for message in reversed(calls):
            if message.usage.total > 0:
                return message
        return calls[-1] if calls else None
