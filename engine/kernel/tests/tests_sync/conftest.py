"""Fixtures for SyncController tests."""

import pytest

from engine.kernel.sync import SyncController

# Short enough to keep tests fast, long enough that two back-to-back edits land in one window.
QUIET_WINDOW = 0.05


@pytest.fixture
def controller(two_elements, id_factory):
    """Controller over e1 (h1) and e2 (img), recording every update and notice."""
    c = SyncController(two_elements, debounce_seconds=QUIET_WINDOW, id_factory=id_factory)
    c.updates = []
    c.subscribe(c.updates.append)
    return c
