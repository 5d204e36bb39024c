"""Unit tests for TokenAnalysisEngine."""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tokenscope.analysis.collector import ContentCollector
from tokenscope.analysis.engine import INFERRED_SYSTEM_LABEL, TokenAnalysisEngine
from tokenscope.analysis.models import CategoryEntrySource
from tokenscope.tokenizer.manager import TokenizerManager
from tokenscope.tokenizer.models import APPROX_MODEL


@pytest.fixture
def engine(approx_manager):
    return TokenAnalysisEngine(approx_manager, ContentCollector())


@pytest.fixture
def scenario_messages(make_message):
    """system / user / assistant with a single telemetry record"""
    return [
        make_message("system", "You are an assistant."),
        make_message("user", "Hello"),
        make_message(
            "assistant",
            "Hi there",
            tokens={"input": 10, "output": 5, "reasoning": 0, "cache": {"read": 2, "write": 0}},
            cost=0.0001,
            provider_id="anthropic",
            model_id="claude-sonnet-4",
        ),
    ]


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_single_call_session(self, engine, scenario_messages):
        analysis = await engine.analyze("ses_1", scenario_messages, APPROX_MODEL, 3)

        assert analysis.input_tokens == 10
        assert analysis.output_tokens == 5
        assert analysis.cache_read_tokens == 2
        assert analysis.cache_write_tokens == 0
        assert analysis.session_cost == pytest.approx(0.0001)
        assert analysis.assistant_message_count == 1

        # Most recent call is the only telemetry record
        assert analysis.most_recent_input == 10
        assert analysis.most_recent_output == 5
        assert analysis.most_recent_cache_read == 2
        assert analysis.most_recent_cost == pytest.approx(0.0001)

        # Category totals from ceil(len / 4)
        assert analysis.categories.system.total_tokens == 6
        assert analysis.categories.user.total_tokens == 2
        assert analysis.categories.assistant.total_tokens == 2
        assert analysis.total_tokens == 10

    @pytest.mark.asyncio
    async def test_empty_transcript_is_all_zero(self, engine):
        analysis = await engine.analyze("ses_empty", [], APPROX_MODEL, 3)

        assert analysis.total_tokens == 0
        assert analysis.assistant_message_count == 0
        assert analysis.session_cost == 0
        assert analysis.categories.system.entries == []
        assert analysis.all_tools_called == []

    @pytest.mark.asyncio
    async def test_infers_system_prompt_from_telemetry(self, engine, make_message, make_tool_part):
        messages = [
            make_message("user", "Hello"),  # 2 tokens
            make_message(
                "assistant",
                "Working",
                parts=[make_tool_part("read", "x" * 40)],  # 10 tokens
                tokens={"input": 100, "output": 20, "cache": {"read": 50, "write": 0}},
                cost=0.01,
            ),
        ]

        analysis = await engine.analyze("ses_2", messages, APPROX_MODEL, 3)

        system = analysis.categories.system
        assert system.total_tokens == 150 - 2 - 10
        assert [e.label for e in system.entries] == [INFERRED_SYSTEM_LABEL]
        assert analysis.total_tokens == analysis.categories.total_tokens

    @pytest.mark.asyncio
    async def test_no_inference_when_local_content_exceeds_reported_input(self, engine, make_message):
        messages = [
            make_message("user", "y" * 400),
            make_message("assistant", "ok", tokens={"input": 10, "output": 1}),
        ]

        analysis = await engine.analyze("ses_3", messages, APPROX_MODEL, 3)

        assert analysis.categories.system.total_tokens == 0
        assert analysis.categories.system.entries == []

    @pytest.mark.asyncio
    async def test_most_recent_call_skips_zero_usage(self, engine, make_message):
        messages = [
            make_message("assistant", "a", tokens={"input": 30, "output": 3}, cost=0.02),
            make_message("assistant", "b", tokens={"input": 0, "output": 0}, cost=0),
        ]

        analysis = await engine.analyze("ses_4", messages, APPROX_MODEL, 3)

        assert analysis.assistant_message_count == 2
        assert analysis.most_recent_input == 30
        assert analysis.most_recent_cost == pytest.approx(0.02)

    @pytest.mark.asyncio
    async def test_malformed_telemetry_counts_as_zero(self, engine, make_message):
        messages = [make_message(
            "assistant",
            "a",
            tokens={"input": "lots", "output": -4, "reasoning": None, "cache": {"read": 7}},
        )]

        analysis = await engine.analyze("ses_5", messages, APPROX_MODEL, 3)

        assert analysis.input_tokens == 0
        assert analysis.output_tokens == 0
        assert analysis.reasoning_tokens == 0
        assert analysis.cache_read_tokens == 7
        assert analysis.cache_write_tokens == 0

    @pytest.mark.asyncio
    async def test_tool_call_counts(self, engine, make_message, make_tool_part):
        messages = [make_message("assistant", parts=[
            make_tool_part("grep", "match"),
            make_tool_part("grep", "match"),
            make_tool_part("edit", status="error"),
        ])]

        analysis = await engine.analyze("ses_6", messages, APPROX_MODEL, 3)

        assert analysis.tool_call_counts == {"grep": 2, "edit": 1}
        assert analysis.all_tools_called == ["edit", "grep"]
        assert analysis.categories.tools.all_entries[0].label == "grep"

    @pytest.mark.asyncio
    async def test_camel_case_dump(self, engine, scenario_messages):
        analysis = await engine.analyze("ses_1", scenario_messages, APPROX_MODEL, 3)
        dumped = analysis.model_dump(by_alias=True)

        assert dumped["sessionID"] == "ses_1"
        assert dumped["categories"]["system"]["totalTokens"] == 6
        assert "allEntries" in dumped["categories"]["user"]


class TestBuildCategory:

    @settings(max_examples=50, deadline=None)
    @given(
        st.lists(st.text(alphabet="abc ", max_size=60), max_size=12),
        st.integers(min_value=0, max_value=6),
    )
    def test_top_entries_are_sorted_prefix_of_all_entries(self, contents, limit):
        engine = TokenAnalysisEngine(TokenizerManager(backends={}), ContentCollector())
        sources = [CategoryEntrySource(label=f"E#{i}", content=c) for i, c in enumerate(contents)]

        summary = asyncio.run(engine.build_category("user", sources, APPROX_MODEL, limit))

        expected = [
            (s.label, TokenizerManager.approximate_token_count(s.content))
            for s in sources
            if s.content.strip()
        ]
        expected = sorted(expected, key=lambda pair: pair[1], reverse=True)

        assert summary.total_tokens == sum(e.tokens for e in summary.all_entries)
        assert [(e.label, e.tokens) for e in summary.all_entries] == expected
        assert summary.entries == summary.all_entries[:limit]
        assert all(e.tokens > 0 for e in summary.all_entries)
