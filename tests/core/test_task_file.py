"""Tests for task definition files."""

import pytest

from claude_orchestrator.core.task_file import load_task_file, split_front_matter
from claude_orchestrator.models.checks import CommandCheck, FileExistsCheck
from claude_orchestrator.services.exceptions import TaskFileError


def _write(tmp_path, text):
    path = tmp_path / "task.md"
    path.write_text(text)
    return path


class TestTaskFile:
    """Test cases for loading task files."""

    def test_load_settings_and_prompt(self, tmp_path):
        path = _write(tmp_path, (
            "---\n"
            "max_iterations: 3\n"
            "max_budget_usd: 5\n"
            "fresh_context: true\n"
            "completion_checks:\n"
            "  - type: command\n"
            "    cmd: pytest -q\n"
            "  - type: file_exists\n"
            "    path: CHANGELOG.md\n"
            "---\n"
            "\n"
            "Implement the parser.\n"
            "Keep it small.\n"
        ))

        task_input = load_task_file(path, tmp_path)

        assert task_input.prompt == "Implement the parser.\nKeep it small."
        assert task_input.project_dir == str(tmp_path)
        assert task_input.max_iterations == 3
        assert task_input.max_budget_usd == 5.0
        assert task_input.fresh_context is True
        assert task_input.completion_checks == [
            CommandCheck(cmd="pytest -q"),
            FileExistsCheck(path="CHANGELOG.md"),
        ]

    def test_empty_front_matter_uses_defaults(self, tmp_path):
        task_input = load_task_file(_write(tmp_path, "---\n---\nDo the thing\n"), tmp_path)
        assert task_input.prompt == "Do the thing"
        assert task_input.max_iterations == 10

    def test_missing_front_matter(self, tmp_path):
        with pytest.raises(TaskFileError, match="must start with YAML front matter"):
            load_task_file(_write(tmp_path, "Just a prompt\n"), tmp_path)

    def test_unclosed_front_matter(self):
        with pytest.raises(TaskFileError, match="not closed"):
            split_front_matter("---\nmax_iterations: 2\n")

    def test_unknown_setting(self, tmp_path):
        with pytest.raises(TaskFileError, match="Unknown setting"):
            load_task_file(_write(tmp_path, "---\nmodel: opus\n---\nPrompt\n"), tmp_path)

    def test_front_matter_must_be_mapping(self, tmp_path):
        with pytest.raises(TaskFileError, match="must be a mapping"):
            load_task_file(_write(tmp_path, "---\n- a\n- b\n---\nPrompt\n"), tmp_path)

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(TaskFileError, match="Invalid YAML"):
            load_task_file(_write(tmp_path, "---\nmax_iterations: [\n---\nPrompt\n"), tmp_path)

    def test_invalid_values(self, tmp_path):
        with pytest.raises(TaskFileError, match="Invalid task file"):
            load_task_file(_write(tmp_path, "---\nmax_iterations: 0\n---\nPrompt\n"), tmp_path)

    def test_empty_prompt(self, tmp_path):
        with pytest.raises(TaskFileError):
            load_task_file(_write(tmp_path, "---\nmax_iterations: 2\n---\n\n"), tmp_path)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(TaskFileError, match="Could not read"):
            load_task_file(tmp_path / "missing.md", tmp_path)
