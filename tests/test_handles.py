import asyncio
import time

import pytest

from dealer_media.errors import HandleRevokedError
from dealer_media.handles import EPHEMERAL_PREFIX, HandleTracker, is_ephemeral_url


def test_acquire_issues_live_ephemeral_url():
    tracker = HandleTracker()
    url = tracker.acquire(b"bytes")

    assert url.startswith(EPHEMERAL_PREFIX)
    assert is_ephemeral_url(url)
    assert tracker.read(url) == b"bytes"
    assert tracker.live_count == 1


def test_each_acquire_gets_a_new_url():
    tracker = HandleTracker()
    assert tracker.acquire(b"a") != tracker.acquire(b"a")


@pytest.mark.asyncio
async def test_release_waits_for_grace_window():
    tracker = HandleTracker(grace_seconds=0.05)
    url = tracker.acquire(b"frame")

    tracker.release(url)
    assert tracker.is_live(url)
    assert tracker.read(url) == b"frame"

    await asyncio.sleep(0.15)
    assert not tracker.is_live(url)
    with pytest.raises(HandleRevokedError):
        tracker.read(url)


@pytest.mark.asyncio
async def test_release_twice_is_idempotent():
    tracker = HandleTracker(grace_seconds=0.05)
    url = tracker.acquire(b"frame")

    tracker.release(url)
    tracker.release(url)
    await asyncio.sleep(0.15)
    tracker.release(url)
    tracker.release(url)

    assert tracker.live_count == 0


def test_release_unknown_handle_does_not_raise():
    tracker = HandleTracker()
    tracker.release("blob:dealer-media/never-issued")


def test_release_without_event_loop_uses_timer_thread():
    tracker = HandleTracker(grace_seconds=0.02)
    url = tracker.acquire(b"frame")

    tracker.release(url)
    assert tracker.is_live(url)

    deadline = time.monotonic() + 2
    while tracker.is_live(url) and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not tracker.is_live(url)


def test_zero_grace_frees_immediately():
    tracker = HandleTracker(grace_seconds=0)
    url = tracker.acquire(b"frame")
    tracker.release(url)
    assert not tracker.is_live(url)


@pytest.mark.asyncio
async def test_teardown_frees_everything_and_cancels_timers():
    tracker = HandleTracker(grace_seconds=10)
    released = tracker.acquire(b"a")
    kept = tracker.acquire(b"b")
    tracker.release(released)

    tracker.teardown()

    assert tracker.live_count == 0
    assert not tracker.is_live(kept)
    tracker.release(released)
    tracker.teardown()


def test_negative_grace_rejected():
    with pytest.raises(ValueError):
        HandleTracker(grace_seconds=-1)


def test_release_still_expires_after_event_loop_closes():
    tracker = HandleTracker(grace_seconds=0.05)
    url = tracker.acquire(b"frame")

    async def release_and_exit():
        tracker.release(url)

    asyncio.run(release_and_exit())
    assert tracker.is_live(url)

    time.sleep(0.1)
    assert not tracker.is_live(url)
    assert tracker.live_count == 0
    with pytest.raises(HandleRevokedError):
        tracker.read(url)
