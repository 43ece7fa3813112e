"""Skill resolution for subagents.

A skill is a directory holding a ``SKILL.md`` file with optional YAML
frontmatter::

    ---
    name: drizzle-orm
    description: Query patterns for Drizzle ORM.
    ---

    # Drizzle ORM
    ...

Skills are looked up by name, project first (``<cwd>/.lantern/skills``) and
then user-wide (``$LANTERN_HOME/skills``).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from lantern_constants import get_lantern_home

logger = logging.getLogger(__name__)

SKILL_FILENAME = "SKILL.md"


@dataclass(frozen=True)
class Skill:
    name: str
    description: str
    path: Path
    body: str


@dataclass
class ResolveSkillsResult:
    skills: List[Skill] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)


def _parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str]:
    """Split YAML frontmatter from the markdown body. Bad YAML yields ``{}``."""
    if not content.startswith("---"):
        return {}, content
    end = content.find("\n---", 3)
    if end == -1:
        return {}, content
    raw = content[3:end]
    body = content[end + 4:].lstrip("\n")
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as e:
        logger.warning("Invalid skill frontmatter: %s", e)
        return {}, body
    return (data if isinstance(data, dict) else {}), body


def get_skill_dirs(cwd: Optional[str] = None) -> List[Path]:
    dirs = []
    if cwd:
        dirs.append(Path(cwd) / ".lantern" / "skills")
    dirs.append(get_lantern_home() / "skills")
    return dirs


def _is_safe_name(name: str) -> bool:
    return bool(name) and "/" not in name and "\\" not in name and ".." not in name and name not in (".",)


def load_skill(skill_file: Path) -> Skill:
    content = skill_file.read_text(encoding="utf-8")
    frontmatter, body = _parse_frontmatter(content)
    return Skill(
        name=str(frontmatter.get("name") or skill_file.parent.name),
        description=str(frontmatter.get("description") or ""),
        path=skill_file,
        body=body.strip(),
    )


def resolve_skills_by_name(names: Sequence[str], cwd: Optional[str] = None) -> ResolveSkillsResult:
    """Resolve each requested skill name to a loaded Skill.

    Names that contain path separators or ``..`` are reported as not found
    rather than being used to build a path.
    """
    result = ResolveSkillsResult()
    seen = set()
    search_dirs = get_skill_dirs(cwd)

    for raw in names or ():
        name = (raw or "").strip()
        if name in seen:
            continue
        seen.add(name)

        if not _is_safe_name(name):
            result.not_found.append(raw)
            continue

        skill = None
        for base in search_dirs:
            candidate = base / name / SKILL_FILENAME
            if candidate.is_file():
                try:
                    skill = load_skill(candidate)
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Could not read skill %s: %s", candidate, e)
                    continue
                break

        if skill is None:
            result.not_found.append(name)
        else:
            result.skills.append(skill)

    return result


def format_skills_block(skills: Sequence[Skill]) -> str:
    """Render skills for inclusion in a subagent system prompt."""
    if not skills:
        return ""
    blocks = []
    for skill in skills:
        header = f'<skill name="{skill.name}" path="{skill.path}">'
        if skill.description:
            header += f"\n{skill.description}\n"
        blocks.append(f"{header}\n{skill.body}\n</skill>")
    return "# Skills\n\nThe following skills provide specialized context for this task.\n\n" + "\n\n".join(blocks)
