from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_ENGINE = "wenyan_lsp.engine.reference:ReferenceEngine"


class ServerConfig(BaseModel):
    engine: str = DEFAULT_ENGINE
    background_validation: bool = True
    validation_workers: int = Field(default=2, ge=1)
    log_level: str = "INFO"
    completion_table: Optional[str] = None

    @field_validator("engine")
    @classmethod
    def _engine_is_import_path(cls, value: str) -> str:
        module, sep, attr = value.partition(":")
        if not sep or not module.strip() or not attr.strip():
            raise ValueError("engine must be a 'module:attribute' import path")
        return value.strip()

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"unknown log level {value!r}")
        return level


class CompletionCandidateDTO(BaseModel):
    label: str = Field(min_length=1)
    kind: Literal["keyword", "operator"]
    detail: str = ""
    documentation: str = ""


class CompletionTableDTO(BaseModel):
    candidates: List[CompletionCandidateDTO]
