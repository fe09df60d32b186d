"""Skill provider registry.

Explicitly constructed and passed to the orchestrator; there is no
process-wide instance.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from intentflow.interfaces.skill_provider import SkillMetadata, SkillProvider

logger = logging.getLogger(__name__)


class SkillRegistry:
    """Maps skill ids to providers, in registration order."""

    def __init__(self, skills: Optional[List[SkillProvider]] = None) -> None:
        self._skills: Dict[str, SkillProvider] = {}
        for skill in skills or []:
            self.register(skill)

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def register(self, skill: SkillProvider) -> None:
        skill_id = skill.metadata.id
        if skill_id in self._skills:
            logger.warning("Skill %s is already registered, overwriting", skill_id)
        self._skills[skill_id] = skill
        logger.debug("Skill %s registered", skill_id)

    def get(self, skill_id: str) -> Optional[SkillProvider]:
        return self._skills.get(skill_id)

    def has(self, skill_id: str) -> bool:
        return skill_id in self._skills

    def remove(self, skill_id: str) -> bool:
        return self._skills.pop(skill_id, None) is not None

    def clear(self) -> None:
        self._skills.clear()

    def get_all(self) -> List[SkillProvider]:
        return list(self._skills.values())

    def get_all_metadata(self) -> List[SkillMetadata]:
        return [skill.metadata for skill in self._skills.values()]

    def get_skills_for_chain(self, chain_id: int) -> List[SkillProvider]:
        return [s for s in self._skills.values() if s.is_chain_supported(chain_id)]

    async def initialize_all(self) -> List[str]:
        """Initialize every provider that supports it.

        Failures are logged, not raised.

        Returns:
            Ids of the skills that failed to initialize
        """
        pending = [
            (skill_id, skill)
            for skill_id, skill in self._skills.items()
            if callable(getattr(skill, "initialize", None))
        ]
        outcomes = await asyncio.gather(
            *(skill.initialize() for _, skill in pending),
            return_exceptions=True,
        )
        failed = [
            skill_id
            for (skill_id, _), outcome in zip(pending, outcomes)
            if isinstance(outcome, Exception)
        ]
        if failed:
            logger.warning("%d skill(s) failed to initialize: %s", len(failed), ", ".join(failed))
        return failed
