"""Consumer liveness tracking and controller leader rotation for data nodes."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def next_leader_id(controller_ids: Sequence[int], leader_id: int) -> int:
    """Return the controller after ``leader_id``, wrapping around to the first."""
    if not controller_ids:
        raise ValueError("no controller nodes configured")
    try:
        index = controller_ids.index(leader_id)
    except ValueError:
        return controller_ids[0]
    if index == len(controller_ids) - 1:
        return controller_ids[0]
    return controller_ids[index + 1]


@dataclass
class _ConsumerHeartbeat:
    at_ms: int
    group_id: str
    queue_name: str


class ConsumerTracker:
    """Tracks consumer heartbeats and which consumers have expired."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._heartbeats: dict[int, _ConsumerHeartbeat] = {}
        self._expired: set[int] = set()
        self._lock = threading.Lock()

    def update_heartbeat(self, queue_name: str, group_id: str, consumer_id: int) -> None:
        with self._lock:
            self._heartbeats[consumer_id] = _ConsumerHeartbeat(
                self._clock(), group_id, queue_name
            )

    def has_consumer_expired(self, consumer_id: int) -> bool:
        """Report whether the consumer expired, clearing the mark if so."""
        with self._lock:
            if consumer_id in self._expired:
                self._expired.discard(consumer_id)
                return True
            return False

    def collect_expired(self, expire_ms: int) -> list[tuple[str, str, int]]:
        """Mark consumers silent for over ``expire_ms`` as expired.

        Returns ``(queue_name, group_id, consumer_id)`` for each of them.
        """
        now = self._clock()
        expired: list[tuple[str, str, int]] = []
        with self._lock:
            for consumer_id, beat in self._heartbeats.items():
                if now - beat.at_ms > expire_ms:
                    self._expired.add(consumer_id)
                    expired.append((beat.queue_name, beat.group_id, consumer_id))
        return expired

    def forget(self, consumer_ids: Iterable[int]) -> None:
        """Stop tracking the heartbeats of the given consumers."""
        with self._lock:
            for consumer_id in consumer_ids:
                self._heartbeats.pop(consumer_id, None)