"""Tests for TokenscopeConfig loading."""

import json
from dataclasses import FrozenInstanceError
from unittest.mock import patch

import pytest

from tokenscope.config import TokenscopeConfig


ENV_VARS = [
    "TOKENSCOPE_ENTRY_LIMIT",
    "TOKENSCOPE_ENABLE_CONTEXT_BREAKDOWN",
    "TOKENSCOPE_ENABLE_TOOL_SCHEMA_ESTIMATION",
    "TOKENSCOPE_ENABLE_CACHE_EFFICIENCY",
    "TOKENSCOPE_ENABLE_SUBAGENT_ANALYSIS",
    "TOKENSCOPE_ENABLE_SKILL_ANALYSIS",
    "TOKENSCOPE_MAX_SUBAGENT_SESSIONS",
    "TOKENSCOPE_COLLABORATOR_TIMEOUT",
    "TOKENSCOPE_TOKENIZER_LOAD_TIMEOUT",
    "TOKENSCOPE_PRICING_PATH",
]


@pytest.fixture
def clean_env(monkeypatch):
    # setenv first so variables written by load_dotenv are removed on teardown
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


def test_defaults():
    config = TokenscopeConfig()

    assert config.entry_limit == 3
    assert config.enable_context_breakdown
    assert config.enable_skill_analysis
    assert config.max_subagent_sessions == 500
    assert config.pricing_path is None


def test_config_is_frozen():
    with pytest.raises(FrozenInstanceError):
        TokenscopeConfig().entry_limit = 10


class TestFromEnv:

    def test_unset_environment_gives_defaults(self, clean_env):
        assert TokenscopeConfig.from_env() == TokenscopeConfig()

    def test_reads_variables(self, clean_env):
        clean_env.setenv("TOKENSCOPE_ENTRY_LIMIT", "7")
        clean_env.setenv("TOKENSCOPE_ENABLE_SUBAGENT_ANALYSIS", "false")
        clean_env.setenv("TOKENSCOPE_ENABLE_SKILL_ANALYSIS", "0")
        clean_env.setenv("TOKENSCOPE_COLLABORATOR_TIMEOUT", "2.5")
        clean_env.setenv("TOKENSCOPE_TOKENIZER_LOAD_TIMEOUT", "none")
        clean_env.setenv("TOKENSCOPE_PRICING_PATH", "/etc/tokenscope/models.json")

        config = TokenscopeConfig.from_env()

        assert config.entry_limit == 7
        assert not config.enable_subagent_analysis
        assert not config.enable_skill_analysis
        assert config.enable_context_breakdown
        assert config.collaborator_timeout == 2.5
        assert config.tokenizer_load_timeout is None
        assert config.pricing_path == "/etc/tokenscope/models.json"

    def test_invalid_numbers_keep_defaults(self, clean_env):
        clean_env.setenv("TOKENSCOPE_ENTRY_LIMIT", "many")
        clean_env.setenv("TOKENSCOPE_COLLABORATOR_TIMEOUT", "soon")

        config = TokenscopeConfig.from_env()

        assert config.entry_limit == 3
        assert config.collaborator_timeout == 30.0

    def test_searches_for_dotenv_without_path(self, clean_env):
        with patch("tokenscope.config.load_dotenv") as load_dotenv:
            TokenscopeConfig.from_env()

        load_dotenv.assert_called_once_with(None)

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("TOKENSCOPE_ENTRY_LIMIT=5\nTOKENSCOPE_ENABLE_CACHE_EFFICIENCY=no\n")

        config = TokenscopeConfig.from_env(env_file)

        assert config.entry_limit == 5
        assert not config.enable_cache_efficiency


class TestFromDict:

    def test_camel_case_keys(self):
        config = TokenscopeConfig.from_dict({
            "entryLimit": 10,
            "enableToolSchemaEstimation": False,
            "maxSubagentSessions": 50,
        })

        assert config.entry_limit == 10
        assert not config.enable_tool_schema_estimation
        assert config.max_subagent_sessions == 50

    def test_snake_case_and_unknown_keys(self):
        config = TokenscopeConfig.from_dict({"entry_limit": 4, "theme": "dark"})
        assert config.entry_limit == 4

    def test_values_are_coerced(self):
        config = TokenscopeConfig.from_dict({
            "entryLimit": "5",
            "enableSkillAnalysis": "false",
            "enableCacheEfficiency": 0,
            "maxSubagentSessions": 20.0,
            "collaboratorTimeout": "2.5",
            "tokenizerLoadTimeout": None,
        })

        assert config.entry_limit == 5
        assert config.enable_skill_analysis is False
        assert config.enable_cache_efficiency is False
        assert config.max_subagent_sessions == 20
        assert config.collaborator_timeout == 2.5
        assert config.tokenizer_load_timeout is None

    def test_invalid_values_keep_defaults(self):
        config = TokenscopeConfig.from_dict({
            "entryLimit": "many",
            "collaboratorTimeout": [1],
            "maxSubagentSessions": True,
        })

        assert config.entry_limit == 3
        assert config.collaborator_timeout == 30.0
        assert config.max_subagent_sessions == 500

    @pytest.mark.parametrize("data", [None, {}])
    def test_empty(self, data):
        assert TokenscopeConfig.from_dict(data) == TokenscopeConfig()

    def test_to_dict_round_trip(self):
        config = TokenscopeConfig(entry_limit=6, enable_cache_efficiency=False)

        dumped = config.to_dict()

        assert dumped["entryLimit"] == 6
        assert dumped["enableCacheEfficiency"] is False
        assert TokenscopeConfig.from_dict(dumped) == config


class TestFromFile:

    def test_reads_json(self, tmp_path):
        path = tmp_path / "tokenscope-config.json"
        path.write_text(json.dumps({"entryLimit": 8, "enableSkillAnalysis": False}))

        config = TokenscopeConfig.from_file(path)

        assert config.entry_limit == 8
        assert not config.enable_skill_analysis

    @pytest.mark.parametrize("content", ["{broken", "[1, 2, 3]"])
    def test_invalid_file_gives_defaults(self, tmp_path, content):
        path = tmp_path / "tokenscope-config.json"
        path.write_text(content)

        assert TokenscopeConfig.from_file(path) == TokenscopeConfig()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert TokenscopeConfig.from_file(tmp_path / "absent.json") == TokenscopeConfig()
