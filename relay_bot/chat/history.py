from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional, Protocol

from relay_bot.utils.logging import get_logger

log = get_logger(__name__)

Turn = Dict[str, str]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


def system_turn(content: str) -> Turn:
    return {"role": "system", "content": content}


def trim_to_cap(turns: List[Turn], cap: int) -> List[Turn]:
    """Keep the system turn at index 0 plus the newest ``cap - 1`` turns."""
    if len(turns) <= cap:
        return turns
    if cap <= 1:
        return turns[:1]
    return [turns[0], *turns[-(cap - 1):]]


class ConversationStore:
    """Per-user chat history with a sliding inactivity timeout.

    Every ``get``/``set`` cancels the user's pending eviction timer and
    schedules a fresh one, so a session lives ``timeout`` seconds past its last
    access. Index 0 of every session is a system turn.
    """

    def __init__(
        self,
        default_system_message: str,
        *,
        max_messages: int = 20,
        timeout: float = 2 * 60 * 60,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.default_system_message = default_system_message
        self.max_messages = max_messages
        self.timeout = timeout
        self._schedule = scheduler or _loop_scheduler
        self._sessions: Dict[str, List[Turn]] = {}
        self._timers: Dict[str, TimerHandle] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def _cancel_timer(self, user_id: str) -> None:
        handle = self._timers.pop(user_id, None)
        if handle is not None:
            handle.cancel()

    def _touch(self, user_id: str) -> None:
        self._cancel_timer(user_id)
        self._timers[user_id] = self._schedule(self.timeout, lambda: self._expire(user_id))

    def _expire(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)
        self._timers.pop(user_id, None)
        log.info("conversation_expired", extra={"extra_fields": {"user_id": user_id}})

    def get(self, user_id: str) -> List[Turn]:
        session = self._sessions.get(user_id)
        if session is None:
            session = [system_turn(self.default_system_message)]
            self._sessions[user_id] = session
        self._touch(user_id)
        return session

    def set(self, user_id: str, turns: List[Turn]) -> None:
        self._sessions[user_id] = list(turns)
        self._touch(user_id)

    def delete(self, user_id: str) -> None:
        self._cancel_timer(user_id)
        self._sessions.pop(user_id, None)

    def reset(self, user_id: str) -> List[Turn]:
        """Drop the history and reseed it with the default system turn."""
        self.delete(user_id)
        return self.get(user_id)

    def set_system_prompt(self, user_id: str, prompt: str) -> None:
        turns = self.get(user_id)
        turns[0] = system_turn(prompt)
        self.set(user_id, turns)

    def append_turn(self, user_id: str, role: str, content: str) -> List[Turn]:
        turns = self.get(user_id)
        turns.append({"role": role, "content": content})
        if len(turns) > self.max_messages:
            turns[:] = trim_to_cap(turns, self.max_messages)
        return turns

    def teardown(self) -> None:
        """Cancel every pending eviction; sessions are left as they are."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()


__all__ = ["ConversationStore", "Turn", "system_turn", "trim_to_cap"]
