"""
Ensure `src` is on sys.path for local test runs without requiring installation,
and provide fixtures shared by the colocated unit tests and the top-level tests/.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.resolve()
SRC = ROOT / "src"
if SRC.exists():
    sys.path.insert(0, str(SRC))


@pytest.fixture
def fast_config():
    """Default pipeline configuration with retry sleeps disabled."""
    from odoogen.resources.generation_config import GenerationConfig, RetrySettings

    return GenerationConfig(retry=RetrySettings(attempts=3, base_delay_s=0, max_delay_s=0))


@pytest.fixture
def recorded_events():
    """Progress callback that keeps every event in ``.events``."""
    events = []

    def _record(event):
        events.append(event)

    _record.events = events
    return _record
