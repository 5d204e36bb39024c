"""
Session analysis orchestration.

TokenscopeService wires every component once and runs one analysis per request:
the category analysis and cost estimate first, then the context, subagent and
skill analyses concurrently. A failing sub-analysis yields its empty default;
only a missing session id or unretrievable messages reach the caller.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tokenscope.analysis.collector import ContentCollector
from tokenscope.analysis.engine import TokenAnalysisEngine
from tokenscope.analysis.resolver import ModelResolver
from tokenscope.config import TokenscopeConfig
from tokenscope.context.analyzer import ContextAnalyzer
from tokenscope.context.models import ContextAnalysisResult
from tokenscope.costs.calculator import CostCalculator
from tokenscope.costs.pricing_config import PricingCatalog
from tokenscope.errors import MessageRetrievalError, SessionNotFoundError
from tokenscope.models import SessionReport
from tokenscope.sessions.client import SessionClient
from tokenscope.skills.analyzer import SkillAnalyzer
from tokenscope.skills.models import SkillAnalysis
from tokenscope.subagents.analyzer import SubagentAnalyzer
from tokenscope.subagents.models import SubagentAnalysis
from tokenscope.tokenizer.manager import TokenizerManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TokenscopeService:
    """Entry point for analyzing a session"""

    def __init__(
        self,
        client: SessionClient,
        config: Optional[TokenscopeConfig] = None,
        catalog: Optional[PricingCatalog] = None,
        tokenizer_manager: Optional[TokenizerManager] = None
    ):
        self.client = client
        self.config = config or TokenscopeConfig()
        self.catalog = catalog or PricingCatalog.load(self.config.pricing_path)
        self.tokenizer_manager = tokenizer_manager or TokenizerManager(
            load_timeout=self.config.tokenizer_load_timeout
        )

        self.model_resolver = ModelResolver()
        self.content_collector = ContentCollector()
        self.analysis_engine = TokenAnalysisEngine(self.tokenizer_manager, self.content_collector)
        self.cost_calculator = CostCalculator(self.catalog)
        self.context_analyzer = ContextAnalyzer(client, self.tokenizer_manager, self.config)
        self.subagent_analyzer = SubagentAnalyzer(
            client,
            self.cost_calculator,
            max_sessions=self.config.max_subagent_sessions
        )
        self.skill_analyzer = SkillAnalyzer(client, self.tokenizer_manager)

    async def analyze_session(
        self,
        session_id: Optional[str],
        entry_limit: Optional[int] = None,
        include_subagents: bool = True
    ) -> SessionReport:
        """
        Analyze token usage and cost of a session.

        Args:
            session_id: Session to analyze
            entry_limit: Top entries kept per category (config default when None)
            include_subagents: Roll up child sessions (also gated by the config)

        Returns:
            SessionReport with every enabled section

        Raises:
            SessionNotFoundError: If session_id is missing or blank
            MessageRetrievalError: If the session's messages cannot be retrieved
        """
        if not session_id or not session_id.strip():
            raise SessionNotFoundError("No session ID available for token analysis")

        try:
            messages = await self.client.get_messages(session_id)
        except Exception as e:
            raise MessageRetrievalError(
                f"Failed to retrieve messages for session {session_id}",
                detail=str(e),
                metadata={"session_id": session_id}
            ) from e
        if messages is None:
            raise MessageRetrievalError(
                f"Failed to retrieve messages for session {session_id}",
                metadata={"session_id": session_id}
            )
        messages = list(messages)

        limit = entry_limit if entry_limit is not None else self.config.entry_limit
        resolved = self.model_resolver.resolve(messages)
        token_model = resolved.model

        analysis = await self.analysis_engine.analyze(session_id, messages, token_model, limit)
        cost = self.cost_calculator.calculate_cost(analysis)
        pricing = self.cost_calculator.get_pricing(token_model.name)

        run_subagents = include_subagents and self.config.enable_subagent_analysis
        run_skills = self.config.enable_skill_analysis

        context_result, subagent_result, skill_result = await asyncio.gather(
            self._with_timeout(self.context_analyzer.analyze(session_id, token_model, pricing)),
            self._with_timeout(
                self.subagent_analyzer.analyze_child_sessions(session_id)
            ) if run_subagents else _none(),
            self._with_timeout(
                self.skill_analyzer.analyze(messages, resolved.provider_id, resolved.model_id, token_model)
            ) if run_skills else _none(),
            return_exceptions=True
        )

        context_result = self._section_or_default("context", session_id, context_result, ContextAnalysisResult)
        if run_subagents:
            subagent_result = self._section_or_default("subagent", session_id, subagent_result, SubagentAnalysis)
        if run_skills:
            skill_result = self._section_or_default("skill", session_id, skill_result, SkillAnalysis)

        grand_total = analysis.total_tokens
        if subagent_result is not None:
            grand_total += subagent_result.total_tokens

        logger.info(
            f"Analyzed session {session_id}: {analysis.total_tokens} tokens "
            f"({grand_total} with subagents), model {resolved.provider_id}/{resolved.model_id}"
        )

        return SessionReport(
            provider_id=resolved.provider_id,
            model_id=resolved.model_id,
            analysis=analysis,
            cost=cost,
            context_breakdown=context_result.context_breakdown,
            tool_estimates=context_result.tool_estimates,
            cache_efficiency=context_result.cache_efficiency,
            skill_analysis=skill_result,
            subagent_analysis=subagent_result,
            grand_total_tokens=grand_total,
        )

    async def _with_timeout(self, coro: Awaitable[T]) -> T:
        timeout = self.config.collaborator_timeout
        if timeout is None:
            return await coro
        return await asyncio.wait_for(coro, timeout)

    @staticmethod
    def _section_or_default(name: str, session_id: str, result: Any, default_factory: Callable[[], T]) -> T:
        """The section's result, or its empty default when it raised or timed out."""
        if isinstance(result, asyncio.TimeoutError):
            logger.warning(f"{name.capitalize()} analysis timed out for session {session_id}")
            return default_factory()
        if isinstance(result, BaseException):
            logger.error(
                f"{name.capitalize()} analysis failed for session {session_id}: {result}",
                exc_info=result
            )
            return default_factory()
        return result


async def _none() -> Any:
    return None
