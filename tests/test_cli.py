"""Tests for the agent-stream command line."""

from __future__ import annotations

import json
import sys
from unittest.mock import patch

import pytest
import yaml

from conftest import model_frame, tool_frame

from agent_stream.cli.main import main
from agent_stream.types import UpstreamError
from agent_stream.upstream.mock import MOCK_RESPONSES


def _run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["agent-stream", *argv])
    main()


@pytest.fixture
def capture(tmp_path):
    path = tmp_path / "capture.raw"
    path.write_text(tool_frame("lookup", {"id": 1}) + model_frame("Hel") + model_frame("lo"))
    return path


class TestReplay:
    def test_whole_file(self, monkeypatch, capsys, capture):
        _run_cli(monkeypatch, "replay", str(capture))
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert lines == [
            {"type": "tool", "payload": {"tool_name": "lookup", "additional_kwargs": {"id": 1}}},
            {"type": "content-delta", "text": "Hel"},
            {"type": "content-delta", "text": "lo"},
            {"type": "content-complete", "text": "Hello"},
        ]

    def test_chunked_matches_whole(self, monkeypatch, capsys, capture):
        _run_cli(monkeypatch, "replay", str(capture))
        whole = capsys.readouterr().out
        _run_cli(monkeypatch, "replay", str(capture), "--chunk-size", "3")
        assert capsys.readouterr().out == whole

    def test_stats(self, monkeypatch, capsys, capture):
        _run_cli(monkeypatch, "replay", str(capture), "-n", "10", "--stats")
        err = capsys.readouterr().err
        assert "tools=1" in err
        assert "deltas=2" in err
        assert "dropped=0" in err

    def test_missing_file(self, monkeypatch, capsys, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            _run_cli(monkeypatch, "replay", str(tmp_path / "missing.raw"))
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err


class TestAsk:
    def test_mock_answer(self, monkeypatch, capsys):
        _run_cli(monkeypatch, "ask", "greeting", "--mock")
        assert capsys.readouterr().out == MOCK_RESPONSES["greeting"] + "\n"

    def test_upstream_unreachable(self, monkeypatch, capsys):
        class Unreachable:
            def __init__(self, config):
                self.closed = False

            async def open_stream(self, question, thread_id=None):
                raise UpstreamError("HTTP error: connection refused")

            async def aclose(self):
                self.closed = True

        monkeypatch.setattr("agent_stream.upstream.AgentClient", Unreachable)
        with pytest.raises(SystemExit) as exc_info:
            _run_cli(monkeypatch, "ask", "hello")
        assert exc_info.value.code == 1
        assert "Upstream error" in capsys.readouterr().err


class TestConfigCommands:
    def test_validate_ok(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / "agent-stream.yaml"
        path.write_text("server:\n  port: 6000\n")
        _run_cli(monkeypatch, "-c", str(path), "config", "validate")
        assert "Config is valid." in capsys.readouterr().out

    def test_validate_errors(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / "agent-stream.yaml"
        path.write_text("upstream:\n  path: agent\n")
        with pytest.raises(SystemExit) as exc_info:
            _run_cli(monkeypatch, "-c", str(path), "config", "validate")
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Config errors:" in out
        assert "upstream.path" in out

    def test_validate_missing_file(self, monkeypatch, tmp_path):
        with pytest.raises(SystemExit):
            _run_cli(monkeypatch, "-c", str(tmp_path / "nope.yaml"), "config", "validate")

    def test_show(self, monkeypatch, capsys, tmp_path):
        path = tmp_path / "agent-stream.yaml"
        path.write_text("filters:\n  generation_node: writer\n")
        _run_cli(monkeypatch, "-c", str(path), "config", "show")
        shown = yaml.safe_load(capsys.readouterr().out)
        assert shown["filters"]["generation_node"] == "writer"
        assert shown["tags"] == {"tool": "Tool :", "model": "Toly :"}


class TestServe:
    def test_runs_uvicorn_with_overrides(self, monkeypatch, capsys):
        with patch("uvicorn.run") as run:
            _run_cli(monkeypatch, "serve", "--port", "6123", "--mock")
        run.assert_called_once()
        app = run.call_args.args[0]
        kwargs = run.call_args.kwargs
        assert kwargs["port"] == 6123
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["log_level"] == "warning"
        assert app.state.config.server.mock is True
        assert "-> mock" in capsys.readouterr().out

    def test_invalid_override_exits(self, monkeypatch, capsys):
        with patch("uvicorn.run") as run:
            with pytest.raises(SystemExit) as exc_info:
                _run_cli(monkeypatch, "serve", "--upstream", "localhost:8000")
        assert exc_info.value.code == 1
        assert "base_url" in capsys.readouterr().err
        run.assert_not_called()


def test_no_command_prints_help(monkeypatch, capsys):
    _run_cli(monkeypatch)
    assert "usage: agent-stream" in capsys.readouterr().out
