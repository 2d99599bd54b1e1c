from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from lsprotocol import types

from wenyan_lsp.config import TomlTable, build_server_config
from wenyan_lsp.documents import DocumentSnapshot
from wenyan_lsp.engine import load_engine
from wenyan_lsp.exceptions import ConfigError, EngineLoadError
from wenyan_lsp.schema import ServerConfig
from wenyan_lsp.validation import Validator

app = typer.Typer(add_completion=False, help="Language server for Wenyan source files.")

LOG_FORMAT = "[wenyan-lsp] %(levelname)s %(name)s: %(message)s"
LANGUAGE_ID = "wenyan"


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the protocol stream."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def _resolve_config(payload: TomlTable, config_path: Path | None) -> ServerConfig:
    try:
        return build_server_config(payload, config_path=config_path)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def format_diagnostic(path: Path, diagnostic: types.Diagnostic) -> str:
    start = diagnostic.range.start
    severity = types.DiagnosticSeverity(
        diagnostic.severity or types.DiagnosticSeverity.Error
    ).name.lower()
    return f"{path}:{start.line + 1}:{start.character + 1}: {severity}: {diagnostic.message}"


@app.command()
def serve(
    tcp: bool = typer.Option(False, "--tcp", help="Listen on TCP instead of stdio."),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(2087, "--port"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to wenyan-lsp.toml."),
    engine: Optional[str] = typer.Option(None, "--engine", help="Engine as module:attribute."),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
    background_validation: Optional[bool] = typer.Option(
        None, "--background-validation/--inline-validation"
    ),
) -> None:
    """Run the language server."""
    from wenyan_lsp.server import server, start

    payload: TomlTable = {
        "engine": engine,
        "log_level": log_level,
        "background_validation": background_validation,
    }
    resolved = _resolve_config(payload, config)
    configure_logging(resolved.log_level)
    server.configure(payload, config)
    if tcp:
        server.start_tcp(host, port)
    else:
        start()


@app.command()
def check(
    paths: List[Path] = typer.Argument(..., help="Source files to validate."),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to wenyan-lsp.toml."),
    engine: Optional[str] = typer.Option(None, "--engine", help="Engine as module:attribute."),
) -> None:
    """Validate files once and print their diagnostics."""
    resolved = _resolve_config({"engine": engine}, config)
    configure_logging(resolved.log_level)
    try:
        validator = Validator(load_engine(resolved.engine))
    except EngineLoadError as exc:
        raise typer.BadParameter(str(exc)) from exc
    reported = 0
    unreadable = False
    for path in paths:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            typer.echo(f"{path}: cannot read: {exc}", err=True)
            unreadable = True
            continue
        snapshot = DocumentSnapshot(
            uri=path.resolve().as_uri(), language_id=LANGUAGE_ID, version=0, text=text
        )
        for diagnostic in validator.validate(snapshot):
            typer.echo(format_diagnostic(path, diagnostic))
            reported += 1
    if unreadable:
        raise typer.Exit(code=2)
    if reported:
        raise typer.Exit(code=1)


def main() -> None:  # pragma: no cover
    app(prog_name="wenyan-lsp")
