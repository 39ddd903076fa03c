import subprocess
from typing import List

import pytest
from click.testing import CliRunner

from claude_orchestrator.core.task_storage import TaskStorageManager
from claude_orchestrator.models.config import OrchestratorConfig, WorkerConfig
from claude_orchestrator.models.task import TaskCreateInput
from claude_orchestrator.worker.agent import AgentRequest


@pytest.fixture
def cli_runner():
    """Provides a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture(autouse=True)
def git_identity(monkeypatch):
    """Give git commits made by tests a fixed identity."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


@pytest.fixture
def orchestrator_home(tmp_path, monkeypatch):
    """Point the orchestrator home directory at a temporary path."""
    home = tmp_path / "home"
    monkeypatch.setenv("CLAUDE_ORCHESTRATOR_HOME", str(home))
    return home


@pytest.fixture
def config(orchestrator_home):
    """Host configuration rooted in a temporary home with fast timings."""
    config = OrchestratorConfig(
        home_dir=orchestrator_home,
        poll_interval_seconds=0.01,
        drain_grace_seconds=0,
        shutdown_grace_seconds=1,
    )
    config.ensure_dirs()
    return config


@pytest.fixture
def storage(config):
    return TaskStorageManager(config.tasks_dir, config.logs_dir)


@pytest.fixture
def git_repo(tmp_path):
    """A git repository with one commit."""
    repo = tmp_path / "project"
    repo.mkdir()
    subprocess.run(["git", "init", "-q"], cwd=repo, check=True)
    (repo / "README.md").write_text("# Project\n")
    subprocess.run(["git", "add", "-A"], cwd=repo, check=True)
    subprocess.run(["git", "commit", "-q", "-m", "Initial commit"], cwd=repo, check=True)
    return repo


@pytest.fixture
def make_task_input(tmp_path):
    def factory(prompt="Fix the bug", **fields):
        fields.setdefault("project_dir", str(tmp_path / "project"))
        return TaskCreateInput(prompt=prompt, **fields)
    return factory


@pytest.fixture
def worker_config(tmp_path):
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return WorkerConfig(
        prompt="Build the feature",
        max_iterations=5,
        log_dir=tmp_path / "logs",
        workspace_dir=workspace,
    )


class FakeAgent:
    """Agent that replays one scripted invocation per call.

    Each script entry is either a list of agent messages, an exception to
    raise, or a callable taking the request and returning a list of
    messages (used to touch the workspace mid-invocation).
    """

    def __init__(self, scripts=None):
        self.scripts = list(scripts or [])
        self.requests: List[AgentRequest] = []

    async def stream(self, request: AgentRequest):
        self.requests.append(request)
        script = self.scripts.pop(0) if self.scripts else []
        if isinstance(script, Exception):
            raise script
        if callable(script):
            script = script(request)
        for message in script:
            yield message


@pytest.fixture
def make_agent():
    """Factory for scripted agents."""
    return FakeAgent
