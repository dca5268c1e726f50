import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


@pytest.fixture(autouse=True)
def _no_event_bus(monkeypatch):
    """Keep domain events local even when REDIS_URL is set in the shell."""
    from src.genfeatures.infrastructure import events

    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setattr(events, "_publisher", None)
