"""Tests for default tool registration and the system prompt."""

from jarvis.auth.credentials import CredentialStore
from jarvis.config import AgentConfig
from jarvis.core.system_prompt import build_system_prompt
from jarvis.tools import build_registry

EXPECTED = {
    "system": {"get_current_time"},
    "file": {"read_file", "write_file", "list_directory"},
    "tasks": {"add_task", "list_tasks", "complete_task", "delete_task"},
    "git": {"git_status", "git_log", "git_diff"},
    "spotify": {
        "get_current_track", "play_music", "pause_music", "next_track",
        "previous_track", "set_volume", "search_and_play",
    },
}


def _registry(tmp_path):
    config = AgentConfig(tasks_file=str(tmp_path / "tasks.json"))
    return build_registry(config, CredentialStore(tmp_path), repo_root=str(tmp_path))


class TestBuildRegistry:
    def test_every_tool_registered_once(self, tmp_path):
        registry = _registry(tmp_path)
        names = [d.name for d in registry.list()]
        assert len(names) == len(set(names))
        assert registry.count() == sum(len(v) for v in EXPECTED.values())

    def test_categories(self, tmp_path):
        registry = _registry(tmp_path)
        for category, names in EXPECTED.items():
            assert {d.name for d in registry.list_by_category(category)} == names

    def test_schema_required_matches_parameters(self, tmp_path):
        registry = _registry(tmp_path)
        for definition, entry in zip(registry.list(), registry.schema_export()):
            required = {p.name for p in definition.parameters if p.required}
            assert set(entry["parameters"]["required"]) == required
            assert set(entry["parameters"]["properties"]) == {p.name for p in definition.parameters}


class TestSystemPrompt:
    def test_lists_each_tool(self, tmp_path):
        registry = _registry(tmp_path)
        prompt = build_system_prompt(registry.list())
        for definition in registry.list():
            assert f"- {definition.name}: {definition.description}" in prompt

    def test_no_tools(self):
        assert "No tools available" in build_system_prompt([])
