from __future__ import annotations

import asyncio

from relay_bot.chat.history import ConversationStore, trim_to_cap

DEFAULT = "You are helpful."


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        assert not self.cancelled
        self.callback()


class FakeScheduler:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if not t.cancelled]


def _store(cap=20, timeout=60.0):
    scheduler = FakeScheduler()
    return ConversationStore(DEFAULT, max_messages=cap, timeout=timeout, scheduler=scheduler), scheduler


def test_get_seeds_default_system_turn():
    store, scheduler = _store()
    turns = store.get("u1")
    assert turns == [{"role": "system", "content": DEFAULT}]
    assert "u1" in store
    assert len(scheduler.pending()) == 1
    assert scheduler.pending()[0].delay == 60.0


def test_each_access_replaces_the_timer():
    store, scheduler = _store()
    store.get("u1")
    store.get("u1")
    store.set("u1", [{"role": "system", "content": "x"}])
    assert len(scheduler.timers) == 3
    assert len(scheduler.pending()) == 1
    assert scheduler.timers[0].cancelled and scheduler.timers[1].cancelled


def test_expiry_removes_session_and_next_get_reseeds():
    store, scheduler = _store()
    store.set_system_prompt("u1", "pirate mode")
    store.append_turn("u1", "user", "ahoy")
    scheduler.pending()[0].fire()
    assert "u1" not in store
    assert store.get("u1") == [{"role": "system", "content": DEFAULT}]


def test_cap_keeps_system_turn_and_newest_turns():
    store, _ = _store(cap=5)
    store.set_system_prompt("u1", "custom")
    for i in range(10):
        store.append_turn("u1", "user", f"m{i}")
    turns = store.get("u1")
    assert len(turns) == 5
    assert turns[0] == {"role": "system", "content": "custom"}
    assert [t["content"] for t in turns[1:]] == ["m6", "m7", "m8", "m9"]


def test_trim_to_cap_noop_under_cap():
    turns = [{"role": "system", "content": "s"}, {"role": "user", "content": "a"}]
    assert trim_to_cap(turns, 5) is turns


def test_delete_cancels_timer():
    store, scheduler = _store()
    store.get("u1")
    store.delete("u1")
    assert "u1" not in store
    assert scheduler.pending() == []


def test_reset_restores_default_prompt():
    store, _ = _store()
    store.set_system_prompt("u1", "custom")
    store.append_turn("u1", "user", "hello")
    assert store.reset("u1") == [{"role": "system", "content": DEFAULT}]


def test_teardown_cancels_without_touching_sessions():
    store, scheduler = _store()
    store.get("u1")
    store.get("u2")
    store.teardown()
    assert scheduler.pending() == []
    assert "u1" in store and "u2" in store


def test_sessions_are_per_user():
    store, _ = _store()
    store.append_turn("u1", "user", "one")
    assert store.get("u2") == [{"role": "system", "content": DEFAULT}]
    assert len(store.get("u1")) == 2


def test_real_event_loop_sliding_timeout():
    async def scenario():
        store = ConversationStore(DEFAULT, timeout=0.2)
        store.append_turn("u1", "user", "hi")
        await asyncio.sleep(0.12)
        store.get("u1")  # restarts the countdown
        await asyncio.sleep(0.12)
        alive_after_touch = "u1" in store
        await asyncio.sleep(0.3)
        return alive_after_touch, "u1" in store

    alive_after_touch, alive_at_end = asyncio.run(scenario())
    assert alive_after_touch is True
    assert alive_at_end is False
