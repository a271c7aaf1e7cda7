"""Tests for Helm release and query commands."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from envdeploy.errors import ProbeError
from envdeploy.shell_commands.helm import HelmCommands
from envdeploy.shell_commands.types import CommandResult


class TestHelmReleaseCommands:
    """Tests for install/upgrade/uninstall."""

    @pytest.fixture
    def mock_runner(self) -> MagicMock:
        """Create a mock command runner."""
        return MagicMock()

    @pytest.fixture
    def helm_commands(self, mock_runner: MagicMock) -> HelmCommands:
        """Create HelmCommands instance with mock runner."""
        return HelmCommands(mock_runner)

    def test_install_command(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        result = helm_commands.install(
            "echo-server-dev",
            Path("chart"),
            "dev",
            value_files=[Path("values-dev.yaml")],
            context="kind-nur-dev",
        )

        assert result.success
        cmd = mock_runner.run.call_args[0][0]
        assert cmd == [
            "helm",
            "install",
            "echo-server-dev",
            "chart",
            "--namespace",
            "dev",
            "-f",
            "values-dev.yaml",
            "--wait",
            "--timeout",
            "5m",
            "--kube-context",
            "kind-nur-dev",
        ]

    def test_upgrade_command(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        helm_commands.upgrade(
            "echo-server-prd", Path("."), "prd", timeout="10m", wait=False
        )

        cmd = mock_runner.run.call_args[0][0]
        assert cmd[:3] == ["helm", "upgrade", "echo-server-prd"]
        assert "--wait" not in cmd
        assert "10m" in cmd
        assert "--kube-context" not in cmd

    def test_install_streams_when_callback_given(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run_streaming.return_value = CommandResult(success=True)
        callback = MagicMock()

        helm_commands.install("echo-server-dev", Path("."), "dev", on_output=callback)

        mock_runner.run.assert_not_called()
        assert mock_runner.run_streaming.call_args.kwargs["on_output"] is callback

    def test_uninstall_command(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True)

        helm_commands.uninstall("echo-server-dev", "dev", context="kind-nur-dev")

        cmd = mock_runner.run.call_args[0][0]
        assert cmd == [
            "helm",
            "uninstall",
            "echo-server-dev",
            "-n",
            "dev",
            "--wait",
            "--kube-context",
            "kind-nur-dev",
        ]


class TestHelmQueries:
    """Tests for list and history parsing."""

    @pytest.fixture
    def mock_runner(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def helm_commands(self, mock_runner: MagicMock) -> HelmCommands:
        return HelmCommands(mock_runner)

    def test_list_releases_parses_json(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True,
            stdout=json.dumps(
                [
                    {
                        "name": "echo-server-dev",
                        "namespace": "dev",
                        "revision": "3",
                        "status": "deployed",
                        "chart": "echo-server-0.1.0",
                    }
                ]
            ),
        )

        releases = helm_commands.list_releases(
            "dev", context="kind-nur-dev", all_states=True
        )

        assert len(releases) == 1
        assert releases[0].name == "echo-server-dev"
        assert releases[0].revision == 3
        assert releases[0].status == "deployed"
        cmd = mock_runner.run.call_args[0][0]
        assert "--all" in cmd
        assert cmd[-2:] == ["--kube-context", "kind-nur-dev"]

    def test_list_releases_empty_output(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="")

        assert helm_commands.list_releases("dev") == []

    def test_list_releases_invalid_json_raises(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(success=True, stdout="not json")

        with pytest.raises(ProbeError):
            helm_commands.list_releases("dev")

    def test_list_releases_failure_raises(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False,
            stderr="Error: Kubernetes cluster unreachable",
            returncode=1,
        )

        with pytest.raises(ProbeError, match="Could not list Helm releases"):
            helm_commands.list_releases("dev")

    def test_history_returns_revisions(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=True,
            stdout=json.dumps(
                [
                    {
                        "revision": 1,
                        "updated": "2024-01-01T10:00:00",
                        "status": "superseded",
                        "chart": "echo-server-0.1.0",
                        "description": "Install complete",
                    },
                    {
                        "revision": 2,
                        "updated": "2024-01-02T10:00:00",
                        "status": "deployed",
                        "chart": "echo-server-0.1.0",
                        "description": "Upgrade complete",
                    },
                ]
            ),
        )

        history = helm_commands.history("echo-server-dev", "dev", max_revisions=5)

        assert [h.revision for h in history] == [1, 2]
        assert history[1].status == "deployed"
        cmd = mock_runner.run.call_args[0][0]
        assert "--max" in cmd
        assert "5" in cmd

    def test_history_release_not_found(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="Error: release: not found", returncode=1
        )

        assert helm_commands.history("missing", "dev") == []

    def test_history_other_failure_raises(
        self, helm_commands: HelmCommands, mock_runner: MagicMock
    ) -> None:
        mock_runner.run.return_value = CommandResult(
            success=False, stderr="Error: Kubernetes cluster unreachable", returncode=1
        )

        with pytest.raises(ProbeError):
            helm_commands.history("echo-server-dev", "dev")
