"""Unit tests for SubagentAnalyzer."""

from typing import Dict, List

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tokenscope.costs.calculator import CostCalculator
from tokenscope.costs.pricing_config import PricingCatalog
from tokenscope.sessions.models import ChildSession, Message
from tokenscope.subagents.analyzer import SubagentAnalyzer, extract_agent_type


def usage_messages(tokens: int = 100, cost: float = 0.01, model_id: str = "claude-sonnet-4") -> List[Message]:
    """One assistant turn with `tokens` input tokens"""
    return [
        Message.model_validate({"role": "user", "parts": [{"type": "text", "text": "do it"}]}),
        Message.model_validate({
            "role": "assistant",
            "tokens": {"input": tokens},
            "cost": cost,
            "modelID": model_id,
        }),
    ]


def wire_tree(mock_client, tree: Dict[str, List[str]], messages: Dict[str, List[Message]], titles=None):
    """Point the mock client's children/messages lookups at an in-memory session tree"""
    titles = titles or {}

    async def get_children(session_id):
        return [
            ChildSession(id=child, title=titles.get(child, f"Task {child}"), parentID=session_id)
            for child in tree.get(session_id, [])
        ]

    async def get_messages(session_id):
        return messages.get(session_id, [])

    mock_client.get_children.side_effect = get_children
    mock_client.get_messages.side_effect = get_messages


@pytest.fixture
def calculator():
    return CostCalculator(PricingCatalog.from_dict({
        "claude-sonnet-4": {"input": 3.0, "output": 15.0, "cacheRead": 0.3, "cacheWrite": 3.75},
    }))


@pytest.fixture
def analyzer(mock_client, calculator):
    return SubagentAnalyzer(mock_client, calculator)


class TestAgentType:

    @pytest.mark.parametrize("title,expected", [
        ("Explore the codebase (@explore subagent)", "explore"),
        ("Review changes (@Reviewer Subagent)", "Reviewer"),
        ("General task", "general"),
        ("", "subagent"),
        ("   ", "subagent"),
    ])
    def test_extract_agent_type(self, title, expected):
        assert extract_agent_type(title) == expected


class TestAnalyzeChildSessions:

    @pytest.mark.asyncio
    async def test_nested_tree_is_flattened_depth_first(self, analyzer, mock_client):
        # A -> B, A -> C, B -> D
        wire_tree(
            mock_client,
            {"A": ["B", "C"], "B": ["D"]},
            {sid: usage_messages() for sid in ("A", "B", "C", "D")},
        )

        result = await analyzer.analyze_child_sessions("A")

        assert [s.session_id for s in result.subagents] == ["B", "D", "C"]
        assert result.total_tokens == 300
        assert result.total_api_cost == pytest.approx(0.03)
        assert result.total_api_calls == 3
        assert not result.truncated

        # The root's own usage plus every descendant
        root = analyzer.summarize_messages(ChildSession(id="A"), usage_messages())
        assert root.total_tokens + result.total_tokens == 400
        assert root.api_cost + result.total_api_cost == pytest.approx(0.04)

    @pytest.mark.asyncio
    async def test_summary_fields(self, analyzer, mock_client):
        messages = [
            Message.model_validate({
                "role": "assistant",
                "tokens": {"input": 1000, "output": 200, "reasoning": 50, "cache": {"read": 400, "write": 100}},
                "cost": 0.5,
                "modelID": "gpt-4o",
            }),
            Message.model_validate({"role": "assistant", "cost": 0.25, "modelID": "claude-sonnet-4"}),
        ]
        wire_tree(mock_client, {"root": ["child"]}, {"child": messages}, titles={"child": "Fix bug (@build subagent)"})

        result = await analyzer.analyze_child_sessions("root")

        summary = result.subagents[0]
        assert summary.agent_type == "build"
        assert summary.assistant_message_count == 2
        assert summary.total_tokens == 1750
        assert summary.api_cost == pytest.approx(0.75)
        # Priced with the last model id
        expected = (1000 * 3.0 + 250 * 15.0 + 400 * 0.3 + 100 * 3.75) / 1_000_000
        assert summary.estimated_cost == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_child_without_messages_still_visits_children(self, analyzer, mock_client):
        wire_tree(mock_client, {"A": ["B"], "B": ["C"]}, {"C": usage_messages()})

        result = await analyzer.analyze_child_sessions("A")

        assert [s.session_id for s in result.subagents] == ["C"]

    @pytest.mark.asyncio
    async def test_message_failure_is_skipped(self, analyzer, mock_client):
        wire_tree(mock_client, {"A": ["B", "C"]}, {"C": usage_messages()})

        async def get_messages(session_id):
            if session_id == "B":
                raise RuntimeError("session store unavailable")
            return usage_messages()

        mock_client.get_messages.side_effect = get_messages

        result = await analyzer.analyze_child_sessions("A")

        assert [s.session_id for s in result.subagents] == ["C"]

    @pytest.mark.asyncio
    async def test_children_failure_yields_empty_analysis(self, analyzer, mock_client):
        mock_client.get_children.side_effect = RuntimeError("boom")

        result = await analyzer.analyze_child_sessions("A")

        assert result.subagents == []
        assert result.total_tokens == 0

    @pytest.mark.asyncio
    async def test_cycle_is_not_revisited(self, analyzer, mock_client):
        # B lists A (the root) and itself as children
        wire_tree(
            mock_client,
            {"A": ["B"], "B": ["A", "B", "C"], "C": ["B"]},
            {sid: usage_messages() for sid in ("A", "B", "C")},
        )

        result = await analyzer.analyze_child_sessions("A")

        assert [s.session_id for s in result.subagents] == ["B", "C"]
        assert result.total_tokens == 200

    @pytest.mark.asyncio
    async def test_work_cap_truncates(self, mock_client, calculator):
        wire_tree(
            mock_client,
            {"root": [f"c{i}" for i in range(10)]},
            {f"c{i}": usage_messages() for i in range(10)},
        )
        analyzer = SubagentAnalyzer(mock_client, calculator, max_sessions=4)

        result = await analyzer.analyze_child_sessions("root")

        assert len(result.subagents) == 4
        assert result.truncated
        assert mock_client.get_messages.await_count == 4

    @pytest.mark.asyncio
    async def test_camel_case_dump(self, analyzer, mock_client):
        wire_tree(mock_client, {"A": ["B"]}, {"B": usage_messages()})

        dumped = (await analyzer.analyze_child_sessions("A")).model_dump(by_alias=True)

        assert dumped["subagents"][0]["sessionID"] == "B"
        assert dumped["totalApiCalls"] == 1
        assert dumped["truncated"] is False


@st.composite
def session_trees(draw):
    """Random trees: node i > 0 has a parent in [0, i)"""
    size = draw(st.integers(min_value=2, max_value=25))
    tree: Dict[str, List[str]] = {}
    for node in range(1, size):
        parent = draw(st.integers(min_value=0, max_value=node - 1))
        tree.setdefault(f"s{parent}", []).append(f"s{node}")
    own_tokens = {f"s{i}": draw(st.integers(min_value=0, max_value=10_000)) for i in range(size)}
    return tree, own_tokens


@settings(max_examples=30, deadline=None)
@given(session_trees())
def test_tree_totals_equal_sum_of_descendants(tree_and_tokens):
    import asyncio
    from unittest.mock import AsyncMock, Mock
    from tokenscope.sessions.client import SessionClient

    tree, own_tokens = tree_and_tokens
    client = Mock(spec=SessionClient)
    client.get_children = AsyncMock()
    client.get_messages = AsyncMock()
    wire_tree(client, tree, {sid: usage_messages(tokens=t) for sid, t in own_tokens.items()})
    analyzer = SubagentAnalyzer(client, CostCalculator(PricingCatalog({})))

    result = asyncio.run(analyzer.analyze_child_sessions("s0"))

    descendants = [sid for sid in own_tokens if sid != "s0"]
    assert len(result.subagents) == len(descendants)
    assert result.total_tokens == sum(own_tokens[sid] for sid in descendants)
    assert result.total_api_cost == pytest.approx(0.01 * len(descendants))
