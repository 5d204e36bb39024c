"""Usage and cost roll-up across a session's descendant (subagent) sessions."""

import logging
import re
from typing import List, Optional, Set

from tokenscope.costs.calculator import CostCalculator
from tokenscope.sessions.client import SessionClient
from tokenscope.sessions.models import ChildSession, Message
from .models import SubagentAnalysis, SubagentSummary

logger = logging.getLogger(__name__)

DEFAULT_AGENT_TYPE = "subagent"
DEFAULT_MAX_SESSIONS = 500

_AGENT_MENTION = re.compile(r"@(\w+)\s+subagent", re.IGNORECASE)


def extract_agent_type(title: str) -> str:
    """'Review (@reviewer subagent)' -> 'reviewer'; otherwise the first word, lowercased"""
    match = _AGENT_MENTION.search(title or "")
    if match:
        return match.group(1)
    words = (title or "").split()
    return words[0].lower() if words else DEFAULT_AGENT_TYPE


class SubagentAnalyzer:
    """Walks the session tree below a session and sums each descendant's own usage"""

    def __init__(
        self,
        client: SessionClient,
        cost_calculator: CostCalculator,
        max_sessions: int = DEFAULT_MAX_SESSIONS
    ):
        self.client = client
        self.cost_calculator = cost_calculator
        self.max_sessions = max_sessions

    async def analyze_child_sessions(self, session_id: str) -> SubagentAnalysis:
        """
        Depth-first pre-order walk over every descendant of session_id.

        Each child is summarized before its own children are visited. Session
        ids already visited (the root included) are skipped, and the walk stops
        with truncated=True once max_sessions descendants have been visited.
        """
        result = SubagentAnalysis()
        visited: Set[str] = {session_id}
        stack: List[ChildSession] = list(reversed(await self._children(session_id)))
        visited_count = 0

        while stack:
            child = stack.pop()
            if child.id in visited:
                logger.warning(f"Session {child.id} already visited, skipping (cyclic session tree?)")
                continue

            if visited_count >= self.max_sessions:
                logger.warning(
                    f"Stopped subagent analysis of {session_id} after {visited_count} sessions"
                )
                result.truncated = True
                break

            visited.add(child.id)
            visited_count += 1

            summary = await self.summarize_child(child)
            if summary is not None:
                result.add(summary)

            stack.extend(reversed(await self._children(child.id)))

        logger.debug(
            f"Subagent analysis of {session_id}: {len(result.subagents)} summaries, "
            f"{result.total_tokens} tokens"
        )
        return result

    async def summarize_child(self, child: ChildSession) -> Optional[SubagentSummary]:
        """Own usage of one child; None when it has no retrievable messages"""
        try:
            messages = await self.client.get_messages(child.id)
        except Exception as e:
            logger.error(f"Failed to fetch messages of child session {child.id}: {e}")
            return None

        if not messages:
            return None
        return self.summarize_messages(child, messages)

    def summarize_messages(self, child: ChildSession, messages: List[Message]) -> SubagentSummary:
        summary = SubagentSummary(
            session_id=child.id,
            title=child.title,
            agent_type=extract_agent_type(child.title),
        )
        model_id: Optional[str] = None

        for message in messages:
            if message.role != "assistant":
                continue
            usage = message.usage
            summary.assistant_message_count += 1
            summary.input_tokens += usage.input
            summary.output_tokens += usage.output
            summary.reasoning_tokens += usage.reasoning
            summary.cache_read_tokens += usage.cache_read
            summary.cache_write_tokens += usage.cache_write
            summary.api_cost += message.cost_or_zero
            if message.model_id:
                model_id = message.model_id

        summary.total_tokens = (
            summary.input_tokens
            + summary.output_tokens
            + summary.reasoning_tokens
            + summary.cache_read_tokens
            + summary.cache_write_tokens
        )
        summary.estimated_cost = self.cost_calculator.estimate_cost(
            self.cost_calculator.get_pricing(model_id),
            input_tokens=summary.input_tokens,
            output_tokens=summary.output_tokens,
            reasoning_tokens=summary.reasoning_tokens,
            cache_read_tokens=summary.cache_read_tokens,
            cache_write_tokens=summary.cache_write_tokens,
        )
        return summary

    async def _children(self, session_id: str) -> List[ChildSession]:
        try:
            return list(await self.client.get_children(session_id))
        except Exception as e:
            logger.error(f"Failed to fetch child sessions of {session_id}: {e}")
            return []
