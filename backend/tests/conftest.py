"""Pytest fixtures for the order assistant tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest

from app.core.config import settings
from app.services.order_actions import parse_action
from app.services.order_types import AgentTurn, ComputerCall, PendingSafetyCheck


class FakeBrowserSession:
    """In-memory stand-in for BrowserSession that records every call."""

    def __init__(self, config=None, urls: Optional[Sequence[str]] = None, fail_on: Optional[str] = None):
        self.config = config
        self.calls: List[tuple] = []
        self.url = ""
        self._urls = list(urls or [])
        self.fail_on = fail_on
        self.closed = 0
        self.shots = 0

    def _maybe_fail(self, name: str) -> None:
        if self.fail_on == name:
            raise RuntimeError(f"{name} failed")

    async def launch(self):
        self._maybe_fail("launch")
        self.calls.append(("launch",))

    async def goto(self, url):
        self._maybe_fail("goto")
        self.calls.append(("goto", url))
        self.url = url

    def current_url(self):
        return self.url

    async def screenshot_base64(self):
        self._maybe_fail("screenshot")
        self.shots += 1
        return f"shot-{self.shots}"

    async def click(self, x, y, button="left"):
        self._maybe_fail("click")
        self.calls.append(("click", x, y, button))
        # each click "navigates" to the next scripted URL, if any
        if self._urls:
            self.url = self._urls.pop(0)

    async def move(self, x, y):
        self.calls.append(("move", x, y))

    async def scroll_by(self, dx, dy):
        self.calls.append(("scroll_by", dx, dy))

    async def press(self, key):
        self.calls.append(("press", key))

    async def type_text(self, text):
        self.calls.append(("type_text", text))

    async def pause(self, ms):
        self.calls.append(("pause", ms))

    async def close(self):
        self.closed += 1

    def actions(self) -> List[tuple]:
        return [c for c in self.calls if c[0] not in ("launch", "goto", "pause")]


class FakeComputerUseClient:
    """Scripted reasoning service: returns the queued turns in order."""

    def __init__(self, turns: Sequence[AgentTurn]):
        self._turns = list(turns)
        self.started: List[Dict[str, Any]] = []
        self.continued: List[Dict[str, Any]] = []

    def _next(self) -> AgentTurn:
        if not self._turns:
            raise AssertionError("reasoning service called more times than scripted")
        return self._turns.pop(0)

    async def start_session(self, prompt, screenshot_b64):
        self.started.append({"prompt": prompt, "screenshot": screenshot_b64})
        return self._next()

    async def continue_session(self, previous_turn_id, call_id, screenshot_b64, acknowledged_checks, current_url):
        self.continued.append({
            "previous_turn_id": previous_turn_id,
            "call_id": call_id,
            "screenshot": screenshot_b64,
            "acknowledged": [c.id for c in acknowledged_checks],
            "current_url": current_url,
        })
        return self._next()


def make_turn(turn_id: str, *actions: Dict[str, Any], checks: Sequence[PendingSafetyCheck] = ()) -> AgentTurn:
    """Build a turn; safety checks are attached to the first proposed action."""
    calls = []
    for i, raw in enumerate(actions):
        calls.append(ComputerCall(
            call_id=f"{turn_id}-call-{i}",
            action=parse_action(raw),
            pending_safety_checks=tuple(checks) if i == 0 else (),
        ))
    return AgentTurn(id=turn_id, calls=tuple(calls))


@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Keep the loop configuration deterministic regardless of the local .env."""
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(settings, "OPENAI_BASE_URL", "https://api.openai.com/v1")
    monkeypatch.setattr(settings, "ORDER_MAX_RETRIES", 0)
    monkeypatch.setattr(settings, "ORDER_MAX_TURNS", 10)
    monkeypatch.setattr(settings, "ORDER_DEFAULT_START_URL", "https://bing.com")
    monkeypatch.setattr(settings, "ORDER_NAVIGATION_SETTLE_MS", 500)
    monkeypatch.setattr(settings, "ORDER_ACTION_SETTLE_MS", 1000)
    monkeypatch.setattr(settings, "ORDER_WAIT_ACTION_MS", 1500)
    monkeypatch.setattr(settings, "ORDER_TYPE_LOG_MAX_CHARS", 80)
    yield


@pytest.fixture
def fake_session() -> FakeBrowserSession:
    return FakeBrowserSession()
