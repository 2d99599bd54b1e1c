from __future__ import annotations

import logging
from pathlib import Path

import pytest
from lsprotocol import types
from typer.testing import CliRunner

from wenyan_lsp import cli


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _source(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_check_clean_file_exits_zero(tmp_path: Path) -> None:
    path = _source(tmp_path, "ok.wy", "令甲为三。\n求甲。\n")
    result = CliRunner().invoke(cli.app, ["check", str(path)])
    assert result.exit_code == 0
    assert result.stdout == ""


def test_check_reports_diagnostics(tmp_path: Path) -> None:
    good = _source(tmp_path, "ok.wy", "令甲为三。")
    bad = _source(tmp_path, "bad.wy", "令甲为三。\n令乙为(四。")
    result = CliRunner().invoke(cli.app, ["check", str(good), str(bad)])
    assert result.exit_code == 1
    assert result.stdout.splitlines() == [f"{bad}:2:4: error: 第2行第4列：括号未闭合"]


def test_check_unreadable_file_exits_two(tmp_path: Path) -> None:
    bad = _source(tmp_path, "bad.wy", "令甲为(四。")
    result = CliRunner().invoke(cli.app, ["check", str(tmp_path / "missing.wy"), str(bad)])
    assert result.exit_code == 2
    assert f"{bad}:1:4: error:" in result.stdout
    assert "cannot read" in result.output


def test_check_with_config_file(tmp_path: Path) -> None:
    config = _source(
        tmp_path, "wenyan-lsp.toml", '[server]\nengine = "wenyan_lsp.nowhere:Engine"\n'
    )
    path = _source(tmp_path, "ok.wy", "令甲为三。")
    result = CliRunner().invoke(cli.app, ["check", str(path), "--config", str(config)])
    assert result.exit_code == 2
    assert "wenyan_lsp.nowhere" in result.output


@pytest.mark.parametrize("engine", ["no-colon", "wenyan_lsp.nowhere:Engine"])
def test_check_rejects_bad_engine(tmp_path: Path, engine: str) -> None:
    path = _source(tmp_path, "ok.wy", "令甲为三。")
    result = CliRunner().invoke(cli.app, ["check", str(path), "--engine", engine])
    assert result.exit_code == 2


def test_serve_rejects_invalid_settings_before_starting() -> None:
    result = CliRunner().invoke(cli.app, ["serve", "--log-level", "chatty"])
    assert result.exit_code == 2


def test_format_diagnostic_uses_one_based_positions() -> None:
    diagnostic = types.Diagnostic(
        range=types.Range(
            start=types.Position(line=2, character=0),
            end=types.Position(line=2, character=1),
        ),
        message="未知错误",
        severity=types.DiagnosticSeverity.Warning,
    )
    assert cli.format_diagnostic(Path("a.wy"), diagnostic) == "a.wy:3:1: warning: 未知错误"


def test_configure_logging_targets_stderr() -> None:
    cli.configure_logging("debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    [handler] = root.handlers
    assert isinstance(handler, logging.StreamHandler)
    assert handler.formatter._fmt == cli.LOG_FORMAT
