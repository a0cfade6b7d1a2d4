"""Detection of partition followers that stopped fetching from their leader."""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterable


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def follower_heartbeat_key(queue_name: str, partition: int, node_id: int) -> str:
    """Key under which a follower's fetch heartbeat for a partition is kept."""
    return f"{queue_name}_{partition}_{node_id}"


class FollowerLagTracker:
    """Tracks when each follower last fetched each partition from this leader.

    A follower counts as lagging once it has fetched at least once and then
    stayed silent for longer than the allowed lag time.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._heartbeats: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heartbeats)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._heartbeats

    def update_follower_heartbeat(
        self, queue_name: str, partition: int, node_id: int
    ) -> None:
        """Record that ``node_id`` just fetched ``partition`` of ``queue_name``."""
        key = follower_heartbeat_key(queue_name, partition, node_id)
        with self._lock:
            self._heartbeats[key] = self._clock()

    def lagging_followers(
        self, followers: Iterable[tuple[str, int, int]], lag_time_ms: int
    ) -> list[tuple[str, int, int]]:
        """Return those ``(queue_name, partition, node_id)`` that are lagging.

        Followers that never sent a heartbeat are not reported.
        """
        now = self._clock()
        lagging: list[tuple[str, int, int]] = []
        with self._lock:
            for queue_name, partition, node_id in followers:
                beat = self._heartbeats.get(
                    follower_heartbeat_key(queue_name, partition, node_id)
                )
                if beat is None:
                    continue
                if now - beat > lag_time_ms:
                    lagging.append((queue_name, partition, node_id))
        return lagging

    def forget(self, queue_name: str, partition: int, node_id: int) -> None:
        """Drop the heartbeat of a follower, e.g. once it is reported lagging."""
        with self._lock:
            self._heartbeats.pop(
                follower_heartbeat_key(queue_name, partition, node_id), None
            )