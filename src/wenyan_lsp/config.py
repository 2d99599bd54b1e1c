from __future__ import annotations

import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from pydantic import ValidationError

from wenyan_lsp.exceptions import ConfigError
from wenyan_lsp.schema import ServerConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "wenyan-lsp.toml"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

# initializationOptions use the client's camelCase spelling.
_OPTION_ALIASES = {
    "engine": "engine",
    "backgroundValidation": "background_validation",
    "validationWorkers": "validation_workers",
    "logLevel": "log_level",
    "completionTable": "completion_table",
}


def _load_toml(path: Path) -> TomlTable:
    """Parse ``path``; a missing, unreadable or malformed file reads as empty."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning("ignoring config file %s: %s", path, exc)
        return {}


def config_file(root: Path | None = None, config_path: Path | None = None) -> Path:
    if config_path is not None:
        return config_path
    return (root if root is not None else Path.cwd()) / DEFAULT_CONFIG_NAME


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    return _load_toml(config_file(root, config_path))


def server_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("server", {})
    return section if isinstance(section, dict) else {}


def initialization_overrides(options: object) -> TomlTable:
    """Map LSP ``initializationOptions`` onto ``[server]`` keys.

    Unknown keys and non-mapping payloads are ignored.
    """
    if not isinstance(options, Mapping):
        return {}
    overrides: TomlTable = {}
    for key, value in options.items():
        name = _OPTION_ALIASES.get(str(key))
        if name is not None:
            overrides[name] = value
    return overrides


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def build_server_config(
    payload: TomlTable | None = None,
    *,
    root: Path | None = None,
    config_path: Path | None = None,
) -> ServerConfig:
    merged = merge_payload(payload or {}, server_defaults(root, config_path))
    known = {key: value for key, value in merged.items() if key in ServerConfig.model_fields}
    try:
        return ServerConfig.model_validate(known)
    except ValidationError as exc:
        raise ConfigError(f"invalid server configuration: {exc}") from exc
