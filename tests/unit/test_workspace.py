"""Tests for workspace provisioning."""

import json
from unittest.mock import patch

import pytest

from agentdash.errors import ProvisionError
from agentdash.workspace import make_workspace_id, provision


class TestMakeWorkspaceId:
    def test_format(self):
        with patch("agentdash.workspace.time.time_ns", return_value=1_700_000_000_123_456_789):
            assert make_workspace_id(42) == "issue-42-1700000000123456"


class TestProvision:
    """Tests for provision."""

    def test_creates_missing_parents(self, tmp_path):
        root = tmp_path / "a" / "b"

        workspace = provision(root, 5, {"number": 5, "title": "T"}, "do it")

        assert workspace.path.parent == root
        assert workspace.path.name == workspace.id
        assert workspace.prompt_file.read_text() == "do it"
        assert json.loads(workspace.issue_file.read_text()) == {"number": 5, "title": "T"}

    def test_collision_is_fatal(self, tmp_path):
        with patch("agentdash.workspace.time.time_ns", return_value=1_000_000):
            provision(tmp_path, 1, {"number": 1}, "first")

            with pytest.raises(ProvisionError, match="already exists"):
                provision(tmp_path, 1, {"number": 1}, "second")

        assert (tmp_path / "issue-1-1000" / "prompt.txt").read_text() == "first"

    def test_unserializable_issue_removes_directory(self, tmp_path):
        with pytest.raises(ProvisionError):
            provision(tmp_path, 1, {"number": 1, "when": object()}, "do it")

        assert list(tmp_path.iterdir()) == []

    def test_root_is_a_file(self, tmp_path):
        root = tmp_path / "file"
        root.write_text("")

        with pytest.raises(ProvisionError):
            provision(root, 1, {"number": 1}, "do it")
