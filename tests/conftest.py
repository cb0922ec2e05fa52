import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from network_blocker import install_network_blocker

from core.http.session import SessionState


@pytest.fixture(autouse=True)
def _default_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DISPATCH_API_BASE_URL", "http://dispatch.test/api")
    monkeypatch.setenv("DISTANCE_INLINE_HOLD_CLEANUP", "true")
    monkeypatch.delenv("DISTANCE_RUN_BUDGET_SECONDS", raising=False)
    monkeypatch.delenv("HOLD_CLEANUP_INTERVAL_SECONDS", raising=False)
    install_network_blocker(monkeypatch)


@pytest.fixture(autouse=True)
def _reset_shared_session():
    yield
    SessionState.session = None
    SessionState.session_owner_pid = None
