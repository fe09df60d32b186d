"""Skill provider base class and registry."""

from intentflow.skills.base import BaseSkill, ValidationReport
from intentflow.skills.registry import SkillRegistry

__all__ = ["BaseSkill", "SkillRegistry", "ValidationReport"]
