"""
Skill usage analysis.

Skill content is injected into context again on every load (the host does not
deduplicate it), so a skill loaded k times costs k times its content.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Tuple

from tokenscope.sessions.client import SessionClient
from tokenscope.sessions.models import Message, ToolPart, ToolState
from tokenscope.tokenizer.manager import TokenizerManager
from tokenscope.tokenizer.models import TokenModel
from .models import AvailableSkill, LoadedSkill, SkillAnalysis

logger = logging.getLogger(__name__)

SKILL_TOOL_ID = "skill"
CONTENT_PREVIEW_CHARS = 500

_AVAILABLE_SKILLS = re.compile(r"<available_skills>([\s\S]*?)</available_skills>", re.IGNORECASE)
_SKILL_ENTRY = re.compile(
    r"<skill>\s*<name>([^<]+)</name>\s*<description>([^<]*)</description>\s*</skill>",
    re.IGNORECASE
)
_LOADED_TITLE = re.compile(r"Loaded skill:\s*(.+)", re.IGNORECASE)


def parse_available_skills(description: str) -> List[Tuple[str, str]]:
    """(name, description) pairs from the <available_skills> block of a tool description"""
    block = _AVAILABLE_SKILLS.search(description)
    if not block:
        return []
    return [
        (match.group(1).strip(), match.group(2).strip())
        for match in _SKILL_ENTRY.finditer(block.group(1))
    ]


def skill_entry_xml(name: str, description: str) -> str:
    """The listing entry of one skill as it appears in the tool description"""
    return f"  <skill>    <name>{name}</name>    <description>{description}</description>  </skill>"


def extract_skill_name(state: ToolState) -> Optional[str]:
    """Skill name from the call input, then its metadata, then a 'Loaded skill: <name>' title."""
    for source in (state.input, state.metadata):
        if source and source.get("name"):
            return str(source["name"])

    if state.title:
        match = _LOADED_TITLE.search(state.title)
        if match:
            return match.group(1).strip() or None
    return None


class SkillAnalyzer:
    """Compares the cost of listing skills with the cost of loading them"""

    def __init__(self, client: SessionClient, tokenizer_manager: TokenizerManager):
        self.client = client
        self.tokenizer_manager = tokenizer_manager

    async def analyze(
        self,
        messages: List[Message],
        provider_id: str,
        model_id: str,
        token_model: TokenModel
    ) -> SkillAnalysis:
        """
        Analyze available and loaded skills.

        A failing tool listing leaves the available side empty; loaded skills
        are still computed from the transcript.
        """
        result = SkillAnalysis()

        available, description_tokens = await self.get_available_skills(provider_id, model_id, token_model)
        result.available_skills = available
        result.total_available_tokens = sum(skill.tokens for skill in available)
        result.skill_tool_description_tokens = description_tokens

        loaded = await self.get_loaded_skills(messages, token_model)
        result.loaded_skills = loaded
        result.total_loaded_tokens = sum(skill.total_tokens for skill in loaded)

        return result

    async def get_available_skills(
        self,
        provider_id: str,
        model_id: str,
        token_model: TokenModel
    ) -> Tuple[List[AvailableSkill], int]:
        """Skills listed by the skill tool, and the token cost of its whole description"""
        try:
            tools = await self.client.list_tools(provider_id, model_id) or []
            skill_tool = next((tool for tool in tools if tool.id == SKILL_TOOL_ID), None)
        except Exception as e:
            logger.error(f"Failed to list tools for {provider_id}/{model_id}: {e}")
            return [], 0

        if skill_tool is None or not skill_tool.description:
            return [], 0

        parsed = parse_available_skills(skill_tool.description)
        description_tokens, *entry_tokens = await asyncio.gather(
            self.tokenizer_manager.count_tokens(skill_tool.description, token_model),
            *[
                self.tokenizer_manager.count_tokens(skill_entry_xml(name, description), token_model)
                for name, description in parsed
            ]
        )

        skills = [
            AvailableSkill(name=name, description=description, tokens=tokens)
            for (name, description), tokens in zip(parsed, entry_tokens)
        ]
        return skills, description_tokens

    async def get_loaded_skills(self, messages: List[Message], token_model: TokenModel) -> List[LoadedSkill]:
        """Completed skill loads grouped by name, largest total first"""
        first_loads: Dict[str, Tuple[int, str]] = {}
        call_counts: Dict[str, int] = {}
        message_index = 0

        for message in messages:
            if message.role in ("user", "assistant"):
                message_index += 1

            for part in message.parts:
                if not isinstance(part, ToolPart) or part.tool != SKILL_TOOL_ID:
                    continue
                if not part.state.is_completed:
                    continue

                name = extract_skill_name(part.state)
                content = (part.state.output or "").strip()
                if not name or not content:
                    continue

                call_counts[name] = call_counts.get(name, 0) + 1
                first_loads.setdefault(name, (message_index, content))

        # Only the first load of each skill is tokenized
        names = list(first_loads)
        counts = await asyncio.gather(
            *[self.tokenizer_manager.count_tokens(first_loads[name][1], token_model) for name in names]
        )

        skills = []
        for name, tokens_per_call in zip(names, counts):
            index, content = first_loads[name]
            if len(content) > CONTENT_PREVIEW_CHARS:
                content = content[:CONTENT_PREVIEW_CHARS] + "..."
            skills.append(LoadedSkill(
                name=name,
                call_count=call_counts[name],
                first_message_index=index,
                tokens_per_call=tokens_per_call,
                total_tokens=tokens_per_call * call_counts[name],
                content=content,
            ))

        return sorted(skills, key=lambda skill: skill.total_tokens, reverse=True)
