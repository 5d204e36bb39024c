"""Skill usage models"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class AvailableSkill(BaseModel):
    """A skill listed in the skill tool's description"""
    name: str
    description: str = ""
    tokens: int = Field(0, description="Cost of listing this skill in the tool description")


class LoadedSkill(BaseModel):
    """A skill loaded into context during the session"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    call_count: int = Field(..., alias="callCount")
    first_message_index: int = Field(
        ...,
        alias="firstMessageIndex",
        description="1-based position among user/assistant messages of the first load"
    )
    tokens_per_call: int = Field(..., alias="tokensPerCall")
    total_tokens: int = Field(..., alias="totalTokens", description="tokens_per_call * call_count")
    content: str = Field("", description="Preview of the loaded content")


class SkillAnalysis(BaseModel):
    """Available versus loaded skill content"""
    model_config = ConfigDict(populate_by_name=True)

    available_skills: List[AvailableSkill] = Field(default_factory=list, alias="availableSkills")
    loaded_skills: List[LoadedSkill] = Field(default_factory=list, alias="loadedSkills")
    total_available_tokens: int = Field(0, alias="totalAvailableTokens")
    total_loaded_tokens: int = Field(0, alias="totalLoadedTokens")
    skill_tool_description_tokens: int = Field(0, alias="skillToolDescriptionTokens")
