from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.harness.engine_harness import PublishRecorder, ScriptedEngine


@pytest.fixture
def recorder() -> PublishRecorder:
    return PublishRecorder()


@pytest.fixture
def engine() -> ScriptedEngine:
    return ScriptedEngine()
