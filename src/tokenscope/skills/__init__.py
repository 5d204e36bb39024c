"""Skill usage: listed versus loaded skill content"""

from .models import AvailableSkill, LoadedSkill, SkillAnalysis
from .analyzer import SkillAnalyzer, extract_skill_name, parse_available_skills

__all__ = [
    "AvailableSkill",
    "LoadedSkill",
    "SkillAnalysis",
    "SkillAnalyzer",
    "extract_skill_name",
    "parse_available_skills",
]
