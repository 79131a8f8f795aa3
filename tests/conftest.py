"""Shared pytest fixtures."""

from __future__ import annotations

import os

import pytest

from plansense.config import reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch: pytest.MonkeyPatch):
    """Each test sees default configuration, whatever the host environment."""
    for key in list(os.environ):
        if key.startswith("PLANSENSE_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()
