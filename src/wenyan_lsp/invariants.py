"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn

from wenyan_lsp.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is carried on the raised exception for diagnosis; it is
    not evaluated.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
