"""Unit tests for the assistant client.

Most tests run the fake assistant script with the current interpreter, so
they exercise real processes without any network or installed CLI.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from qarun.assistant.client import AssistantClient
from qarun.assistant.errors import (
    EmptyOutputError,
    ProcessSpawnError,
    ProcessTimeoutError,
    ToolUnavailableError,
)
from qarun.assistant.invoker import ProcessInvocation, ProcessInvoker
from qarun.config import AssistantConfig


@pytest.fixture
def client(fake_assistant_config: AssistantConfig) -> AssistantClient:
    """Client wired to the fake assistant."""
    return AssistantClient(fake_assistant_config)


class TestBuildCommand:
    """Tests for command construction."""

    def test_with_model(self) -> None:
        """Test the full argument vector."""
        client = AssistantClient(AssistantConfig(command="gemini", model="gemini-pro"))

        assert client.build_command("review") == ["gemini", "-m", "gemini-pro", "-p", "review"]

    def test_without_model(self) -> None:
        """Test that an empty model omits the model flag."""
        client = AssistantClient(AssistantConfig(command="claude", model="", prompt_flag="--print"))

        assert client.build_command("review") == ["claude", "--print", "review"]

    def test_extra_args_follow_command(self) -> None:
        """Test extra argument placement."""
        client = AssistantClient(
            AssistantConfig(command="gemini", model="m", extra_args=["--yolo", "--sandbox"])
        )

        assert client.build_command("p")[:3] == ["gemini", "--yolo", "--sandbox"]


class TestAvailability:
    """Tests for the version check."""

    def test_version(self, client: AssistantClient, tmp_path: Path) -> None:
        """Test a responsive assistant."""
        assert client.get_version(tmp_path) == "fake-assistant 1.0.0"
        assert client.check_available(tmp_path) is True
        assert client.require_available(tmp_path) == "fake-assistant 1.0.0"

    def test_failing_version_check(
        self,
        client: AssistantClient,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test an assistant whose version check exits non-zero."""
        monkeypatch.setenv("FAKE_ASSISTANT_UNAVAILABLE", "1")

        assert client.get_version(tmp_path) is None
        with pytest.raises(ToolUnavailableError, match="did not answer '--version'"):
            client.require_available(tmp_path)

    def test_missing_executable(self, tmp_path: Path) -> None:
        """Test an assistant that is not installed."""
        client = AssistantClient(AssistantConfig(command="/nonexistent/gemini"))

        assert client.check_available(tmp_path) is False

    def test_disabled(self, fake_assistant_config: AssistantConfig, tmp_path: Path) -> None:
        """Test that a disabled assistant is never probed."""
        fake_assistant_config.enabled = False
        invoker = MagicMock(spec=ProcessInvoker)
        client = AssistantClient(fake_assistant_config, invoker)

        assert client.check_available(tmp_path) is False
        with pytest.raises(ToolUnavailableError, match="disabled"):
            client.require_available(tmp_path)
        invoker.invoke.assert_not_called()


class TestComplete:
    """Tests for AssistantClient.complete."""

    def test_fenced_answer(self, client: AssistantClient, sample_project: Path) -> None:
        """Test a normal answer."""
        response = client.complete("review this", sample_project, timeout=20)

        assert "```json" in response.text
        assert response.exit_code == 0
        assert response.prompt_length == len("review this")
        assert response.duration > 0

    def test_stderr_answer(self, client: AssistantClient, tmp_path: Path) -> None:
        """Test an answer printed on stderr only."""
        response = client.complete("review [[stderr]]", tmp_path, timeout=20)

        assert '"score": 90' in response.text

    def test_nonzero_exit_with_output(self, client: AssistantClient, tmp_path: Path) -> None:
        """Test that output is kept despite a failing exit code."""
        response = client.complete("review [[exit:2]]", tmp_path, timeout=20)

        assert response.exit_code == 2
        assert '"score": 90' in response.text

    def test_empty_output(self, client: AssistantClient, tmp_path: Path) -> None:
        """Test that silence raises EmptyOutputError."""
        with pytest.raises(EmptyOutputError, match=r"exit code: 4"):
            client.complete("review [[empty]] [[exit:4]]", tmp_path, timeout=20)

    def test_timeout(self, client: AssistantClient, tmp_path: Path) -> None:
        """Test that a hanging assistant raises ProcessTimeoutError."""
        with pytest.raises(ProcessTimeoutError) as exc_info:
            client.complete("review [[sleep]]", tmp_path, timeout=1)

        assert exc_info.value.timeout == 1
        assert exc_info.value.invocation.timed_out is True

    def test_spawn_error_propagates(self, tmp_path: Path) -> None:
        """Test that an unstartable assistant raises ProcessSpawnError."""
        client = AssistantClient(AssistantConfig(command="/nonexistent/gemini"))

        with pytest.raises(ProcessSpawnError):
            client.complete("review", tmp_path, timeout=5)

    def test_uses_invoker(self, tmp_path: Path) -> None:
        """Test the invoker contract with a mock."""
        invoker = MagicMock(spec=ProcessInvoker)
        invoker.invoke.return_value = ProcessInvocation(
            command=("gemini",),
            working_dir=tmp_path,
            timeout=30,
            stdout='{"score": 1}',
            exit_code=0,
            duration=0.5,
        )
        client = AssistantClient(AssistantConfig(model=""), invoker)

        response = client.complete("prompt", tmp_path, timeout=30)

        invoker.invoke.assert_called_once_with(["gemini", "-p", "prompt"], tmp_path, 30)
        assert response.text == '{"score": 1}'
        assert response.duration == 0.5
