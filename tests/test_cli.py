"""Tests for llm7_chat.cli module.

The CLI runs real LLM7Client calls against respx-mocked endpoints.
"""

import json
import os
import pytest
from unittest.mock import patch

import httpx
import respx

from llm7_chat.cli import _build_parser, main
from tests.conftest import (
    MOCK_BASE_URL,
    MOCK_COMPLETION_RESPONSE,
    MOCK_COMPLETIONS_URL,
    sse_stream,
)


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run from an empty directory (no .env) with no LLM7_* variables."""
    monkeypatch.chdir(tmp_path)
    env = {k: v for k, v in os.environ.items() if not k.startswith("LLM7_")}
    with patch.dict(os.environ, env, clear=True):
        yield


def run_cli(*args: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(["--base-url", MOCK_BASE_URL, "--max-retries", "0", *args])
    return exc_info.value.code


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


class TestParser:

    def test_repeatable_stop(self):
        args = _build_parser().parse_args(["hi", "--stop", "A", "--stop", "B"])
        assert args.stop == ["A", "B"]

    def test_defaults_leave_config_to_env(self):
        args = _build_parser().parse_args(["hi"])
        assert args.model is None
        assert args.temperature is None
        assert args.stream is False


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


class TestChatCommand:

    @respx.mock
    def test_prints_completion(self, capsys):
        respx.post(MOCK_COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        assert run_cli("What is the capital of France?") == 0
        assert capsys.readouterr().out == "Paris\n"

    @respx.mock
    def test_streams_completion(self, capsys):
        respx.post(MOCK_COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, content=sse_stream("Par", "is"))
        )

        assert run_cli("--stream", "What is the capital of France?") == 0
        assert capsys.readouterr().out == "Paris\n"

    @respx.mock
    def test_sends_system_prompt_and_flags(self):
        route = respx.post(MOCK_COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=MOCK_COMPLETION_RESPONSE)
        )

        run_cli(
            "--system", "Be brief.",
            "--model", "model-x",
            "--temperature", "0.2",
            "--max-tokens", "16",
            "--stop", "END",
            "Hi",
        )

        body = json.loads(route.calls.last.request.content)
        assert body["model"] == "model-x"
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 16
        assert body["stop"] == ["END"]
        assert body["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ]

    @respx.mock
    def test_api_error_exit_code(self, capsys):
        respx.post(MOCK_COMPLETIONS_URL).mock(return_value=httpx.Response(401, text="no key"))

        assert run_cli("Hi") == 1
        assert "Error:" in capsys.readouterr().err

    def test_empty_prompt(self, capsys):
        assert run_cli("   ") == 1
        assert "empty prompt" in capsys.readouterr().err
