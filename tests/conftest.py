"""Pytest configuration and fixtures for agentdash tests.

Agent processes are never really spawned: tests patch ``subprocess.Popen``
in ``agentdash.agents`` and control liveness through the returned mock.
"""

from unittest.mock import Mock

import pytest
from click.testing import CliRunner

from agentdash.agents import AgentLauncher, AgentRegistry
from agentdash.config import Config


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep the developer's own config and auth settings out of tests."""
    monkeypatch.delenv("AGENTDASH_CONFIG", raising=False)
    monkeypatch.delenv("AGENTDASH_WEB_AUTH", raising=False)
    monkeypatch.delenv("AGENTDASH_WEB_USERNAME", raising=False)
    monkeypatch.delenv("AGENTDASH_WEB_PASSWORD", raising=False)


@pytest.fixture
def config(tmp_path):
    """Config whose workspaces live under the test's tmp dir."""
    return Config(workspaces_dir=tmp_path / "workspaces")


@pytest.fixture
def launcher(config):
    return AgentLauncher(config, AgentRegistry())


@pytest.fixture
def fake_process():
    """A stand-in for the spawned pipeline; alive until poll() says otherwise."""
    process = Mock()
    process.pid = 4242
    process.poll.return_value = None
    return process


@pytest.fixture
def mock_popen(monkeypatch, fake_process):
    popen = Mock(return_value=fake_process)
    monkeypatch.setattr("agentdash.agents.subprocess.Popen", popen)
    return popen


@pytest.fixture
def sample_issue():
    return {
        "number": 42,
        "title": "Crash on empty input",
        "body": "Steps to reproduce: run with no arguments.",
        "labels": [{"name": "bug"}],
    }


@pytest.fixture
def cli_runner():
    """Create a Click test runner."""
    return CliRunner()
