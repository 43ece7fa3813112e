"""Tests for agent/skills.py -- skill lookup by name."""

from pathlib import Path

import pytest

from agent.skills import (
    _parse_frontmatter,
    format_skills_block,
    resolve_skills_by_name,
)


def _make_skill(skills_dir: Path, name: str, description: str = "", body: str = "Step 1: Do the thing."):
    skill_dir = skills_dir / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    frontmatter = f"---\nname: {name}\ndescription: {description or 'Description for ' + name}.\n---\n\n"
    (skill_dir / "SKILL.md").write_text(frontmatter + f"# {name}\n\n{body}\n")
    return skill_dir


@pytest.fixture
def homes(tmp_path, monkeypatch):
    lantern_home = tmp_path / "home"
    project = tmp_path / "project"
    (lantern_home / "skills").mkdir(parents=True)
    (project / ".lantern" / "skills").mkdir(parents=True)
    monkeypatch.setenv("LANTERN_HOME", str(lantern_home))
    return lantern_home / "skills", project


class TestParseFrontmatter:
    def test_valid_frontmatter(self):
        fm, body = _parse_frontmatter("---\nname: test\ndescription: A test.\n---\n\n# Body\n")
        assert fm == {"name": "test", "description": "A test."}
        assert body.startswith("# Body")

    def test_no_frontmatter(self):
        fm, body = _parse_frontmatter("# Just a heading\n")
        assert fm == {}
        assert body == "# Just a heading\n"

    def test_unterminated_frontmatter(self):
        fm, _ = _parse_frontmatter("---\nname: x\n# body")
        assert fm == {}

    def test_invalid_yaml(self):
        fm, body = _parse_frontmatter("---\nname: [oops\n---\nbody")
        assert fm == {}
        assert body == "body"


class TestResolveSkillsByName:
    def test_user_skill(self, homes):
        user_skills, project = homes
        _make_skill(user_skills, "drizzle-orm", "Drizzle patterns")
        result = resolve_skills_by_name(["drizzle-orm"], cwd=str(project))
        assert [s.name for s in result.skills] == ["drizzle-orm"]
        assert result.skills[0].description == "Drizzle patterns."
        assert "Step 1" in result.skills[0].body
        assert result.not_found == []

    def test_project_skill_shadows_user_skill(self, homes):
        user_skills, project = homes
        _make_skill(user_skills, "ios-26", body="user version")
        _make_skill(project / ".lantern" / "skills", "ios-26", body="project version")
        result = resolve_skills_by_name(["ios-26"], cwd=str(project))
        assert "project version" in result.skills[0].body

    def test_missing_and_duplicate_names(self, homes):
        user_skills, project = homes
        _make_skill(user_skills, "a")
        result = resolve_skills_by_name(["a", "a", "missing"], cwd=str(project))
        assert [s.name for s in result.skills] == ["a"]
        assert result.not_found == ["missing"]

    @pytest.mark.parametrize("name", ["../secrets", "a/b", "..", ""])
    def test_path_like_names_are_not_found(self, homes, name):
        _, project = homes
        result = resolve_skills_by_name([name], cwd=str(project))
        assert result.skills == []
        assert result.not_found == [name]

    def test_name_falls_back_to_directory(self, homes):
        user_skills, project = homes
        skill_dir = user_skills / "bare"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text("No frontmatter here.")
        skill = resolve_skills_by_name(["bare"], cwd=str(project)).skills[0]
        assert skill.name == "bare"
        assert skill.description == ""


class TestFormatSkillsBlock:
    def test_empty(self):
        assert format_skills_block([]) == ""

    def test_renders_each_skill(self, homes):
        user_skills, project = homes
        _make_skill(user_skills, "a")
        _make_skill(user_skills, "b")
        block = format_skills_block(resolve_skills_by_name(["a", "b"], cwd=str(project)).skills)
        assert block.startswith("# Skills")
        assert '<skill name="a"' in block
        assert '<skill name="b"' in block
        assert block.count("</skill>") == 2
