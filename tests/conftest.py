"""
Pytest fixtures and test configuration for continuity tests.
"""

import pytest

from continuity.config import load_config
from continuity.core import Continuity
from continuity.storage import DecisionLog, SnapshotArchive, SQLiteStore
from continuity.types import Checkpoint, Decision, SessionRecord, utc_now


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Never touch the real ~/.continuity."""
    home = tmp_path / "home"
    monkeypatch.setenv("CONTINUITY_DATA_DIR", str(home))
    return home


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def config(data_dir):
    return load_config(data_dir)


@pytest.fixture
def store(config):
    s = SQLiteStore(config.db_path)
    yield s
    s.close()


@pytest.fixture
def archive(config, store):
    return SnapshotArchive(config.sessions_dir, store)


@pytest.fixture
def decision_log(config):
    return DecisionLog(config.decisions_dir)


@pytest.fixture
def continuity(config):
    c = Continuity(config=config)
    yield c
    c.close()


@pytest.fixture
def make_checkpoint():
    """Factory for checkpoints with sensible defaults."""
    counter = {"n": 0}

    def _make(workspace="ws", operation=None, timestamp=None, **state):
        counter["n"] += 1
        return Checkpoint(
            id=f"cp-{counter['n']}",
            workspace=workspace,
            timestamp=timestamp or utc_now(),
            operation=operation or f"op {counter['n']}",
            state=state,
        )

    return _make


@pytest.fixture
def make_session():
    """Factory for session records."""
    counter = {"n": 0}

    def _make(workspace="ws", start_time=None, **kwargs):
        counter["n"] += 1
        return SessionRecord(
            id=kwargs.pop("id", f"session-{counter['n']}"),
            workspace=workspace,
            start_time=start_time or utc_now(),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_decision():
    """Factory for decisions."""
    counter = {"n": 0}

    def _make(decision="Use SQLite for state", workspace="ws", **kwargs):
        counter["n"] += 1
        defaults = {
            "id": f"dec-{counter['n']}",
            "timestamp": f"2026-01-{counter['n']:02d}T00:00:00+00:00",
            "workspace": workspace,
            "category": "technical",
            "decision": decision,
            "rationale": "Simple and durable",
        }
        defaults.update(kwargs)
        return Decision(**defaults)

    return _make
