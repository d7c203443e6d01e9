"""Shared fixtures: every test starts from a clean tracking context."""

import pytest

from reactly import reset_context, set_scheduler


@pytest.fixture(autouse=True)
def clean_context():
    reset_context()
    set_scheduler(None)
    yield
    reset_context()
    set_scheduler(None)
