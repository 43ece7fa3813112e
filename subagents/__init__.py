"""Subagents exposed as tools in the ``subagents`` toolset.

Importing the package registers oracle, reviewer, lookout, scout and jester
with the tool registry.
"""

from subagents import jester, lookout, oracle, reviewer, scout  # noqa: F401  (registration)
from subagents.prompts import SUBAGENT_GUIDANCE, build_guidance_prompt

SUBAGENT_NAMES = ("oracle", "reviewer", "lookout", "scout", "jester")

__all__ = ["SUBAGENT_GUIDANCE", "SUBAGENT_NAMES", "build_guidance_prompt"]
