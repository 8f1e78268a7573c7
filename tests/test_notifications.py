"""Tests for threshold notifications."""

from __future__ import annotations

import random

import pytest

from deptox.notifications import DesktopNotifier, threshold_message

GB = 1024**3


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sent(monkeypatch):
    messages: list[tuple[str, str]] = []

    async def fake_send(self, title, body):
        messages.append((title, body))

    monkeypatch.setattr(DesktopNotifier, "_send", fake_send)
    return messages


class TestThresholdMessage:
    def test_mentions_total(self):
        title, body = threshold_message(7 * GB, 5 * GB, rng=random.Random(1))
        assert title
        assert "7.0 GB" in body

    def test_all_variations_reachable(self):
        rng = random.Random(0)
        titles = {threshold_message(7 * GB, 5 * GB, rng=rng)[0] for _ in range(200)}
        assert len(titles) == 4


class TestDesktopNotifier:
    @pytest.mark.asyncio
    async def test_cooldown_suppresses_rapid_repeats(self, clock, sent):
        notifier = DesktopNotifier(cooldown=2.0, clock=clock)
        notifier.notify_threshold_exceeded(7 * GB, 5 * GB)
        clock.now += 1.0
        notifier.notify_threshold_exceeded(7 * GB, 5 * GB)
        await notifier.wait()
        assert len(sent) == 1

        clock.now += 1.5
        notifier.notify_threshold_exceeded(7 * GB, 5 * GB)
        await notifier.wait()
        assert len(sent) == 2

    def test_no_running_loop_is_silent(self, clock, sent):
        notifier = DesktopNotifier(clock=clock)
        notifier.notify_threshold_exceeded(7 * GB, 5 * GB)
        assert sent == []

    @pytest.mark.asyncio
    async def test_delivery_failure_is_swallowed(self, clock, monkeypatch):
        async def broken_send(self, title, body):
            raise AssertionError("must not be awaited by the caller")

        monkeypatch.setattr(DesktopNotifier, "_send", broken_send)
        notifier = DesktopNotifier(clock=clock)
        notifier.notify_threshold_exceeded(7 * GB, 5 * GB)
        await notifier.wait()
