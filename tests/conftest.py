"""Pytest configuration and fixtures for WebAgent tests."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from webagent.browser import MockBrowser, PageCache
from webagent.config import Settings

from .fakes import FakeService, make_action


@pytest.fixture(autouse=True)
def restore_root_log_level():
    """Undo root level changes made by configure_logging."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


@pytest.fixture
def fake_service() -> FakeService:
    """Service that plans two tasks and finishes after one search."""
    return FakeService(
        actions=[
            make_action("google_search", query="solar vs wind cost"),
            make_action("finish", reason="Solar is cheaper."),
        ]
    )


@pytest.fixture
def browser() -> MockBrowser:
    """Mock browser with a private cache."""
    return MockBrowser(PageCache())


@pytest.fixture
def settings() -> Settings:
    """Settings with a dummy API key and a small step budget."""
    return Settings(api_key="test-key", max_steps=10, timeout=5.0)


@pytest.fixture
def gemini_payload():
    """Build a generateContent response body with the given text."""

    def _payload(text: str, grounding: list[dict[str, Any]] | None = None) -> dict[str, Any]:
        candidate: dict[str, Any] = {"content": {"role": "model", "parts": [{"text": text}]}}
        if grounding is not None:
            candidate["groundingMetadata"] = {"groundingChunks": grounding}
        return {"candidates": [candidate]}

    return _payload
