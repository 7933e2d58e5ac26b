import pytest


@pytest.fixture(autouse=True)
def _wide_terminal(monkeypatch):
    # rich wraps tables at the detected width; pin it so CLI output is stable
    monkeypatch.setenv("COLUMNS", "200")
