"""Tests for consecutive-fallback accounting."""

from __future__ import annotations

from typing import Any

import pytest

from livechat_bridge.errors import SessionNotFound
from livechat_bridge.fallback import FALLBACK_STREAK_FIELD, FallbackTracker


@pytest.mark.asyncio
async def test_streak_increments_and_resets(livechat: Any) -> None:
    """Fallbacks increment the streak and any successful reply resets it."""
    tracker = FallbackTracker(livechat, threshold=3)

    streaks = [await tracker.on_reply("room-1", is_fallback) for is_fallback in (True, True, False, True)]

    assert streaks == [1, 2, 0, 1]
    assert livechat.rooms["room-1"].custom_fields[FALLBACK_STREAK_FIELD] == 1


@pytest.mark.asyncio
async def test_should_escalate_at_threshold(livechat: Any) -> None:
    """Escalation starts once the streak reaches the threshold."""
    tracker = FallbackTracker(livechat, threshold=2)

    await tracker.on_fallback("room-1")
    assert await tracker.should_escalate("room-1") is False
    await tracker.on_fallback("room-1")
    assert await tracker.should_escalate("room-1") is True


@pytest.mark.asyncio
async def test_zero_threshold_never_escalates(livechat: Any) -> None:
    """A threshold of zero disables escalation."""
    livechat.rooms["room-1"].custom_fields[FALLBACK_STREAK_FIELD] = 50
    tracker = FallbackTracker(livechat, threshold=0)

    assert await tracker.should_escalate("room-1") is False


@pytest.mark.asyncio
async def test_threshold_read_from_environment(livechat: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    """Without an explicit threshold the configured limit is used."""
    monkeypatch.setenv("DIALOGFLOW_FALLBACK_RESPONSES_LIMIT", "1")
    tracker = FallbackTracker(livechat)

    await tracker.on_fallback("room-1")

    assert tracker.threshold == 1
    assert await tracker.should_escalate("room-1") is True


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", ["oops", None, -4])
async def test_bad_stored_value_reads_as_zero(livechat: Any, stored: Any) -> None:
    """Corrupt or negative counters are treated as an empty streak."""
    livechat.rooms["room-1"].custom_fields[FALLBACK_STREAK_FIELD] = stored
    tracker = FallbackTracker(livechat)

    assert await tracker.get_streak("room-1") == 0
    assert await tracker.on_fallback("room-1") == 1


@pytest.mark.asyncio
async def test_unknown_session_raises(livechat: Any) -> None:
    """Streaks for unknown rooms raise SessionNotFound."""
    tracker = FallbackTracker(livechat, threshold=1)

    with pytest.raises(SessionNotFound):
        await tracker.on_fallback("missing")
