"""Assignment of queue partitions to the consumers of consumer groups."""

from __future__ import annotations

import threading


class ConsumerGroupAssigner:
    """Spreads a queue's partitions over the consumers of each group.

    A new consumer takes every partition of the queue that no consumer of its
    group holds. If that is fewer than its fair share, it takes partitions
    away from the consumers that hold the most. Consumer ids are unique across
    all queues and groups and start at 1.
    """

    def __init__(self) -> None:
        self.last_consumer_id = 0
        # queue name -> group id -> partition -> consumer id
        self._partition_consumers: dict[str, dict[str, dict[int, int]]] = {}
        self._partition_counts: dict[int, int] = {}
        self._lock = threading.RLock()

    def _group(self, queue_name: str, group_id: str) -> dict[int, int]:
        return self._partition_consumers.setdefault(queue_name, {}).setdefault(group_id, {})

    def _consumer_with_most_partitions(
        self, group: dict[int, int], exclude: set[int]
    ) -> tuple[int, int]:
        best_consumer = 0
        best_count = -1
        for partition in sorted(group):
            if partition in exclude:
                continue
            consumer_id = group[partition]
            count = self._partition_counts.get(consumer_id, 0)
            if count > best_count:
                best_consumer, best_count = consumer_id, count
        return best_consumer, best_count

    def assign_consumer(
        self, queue_name: str, group_id: str, total_partitions: int
    ) -> int | None:
        """Register a new consumer in a group and give it partitions.

        Returns the new consumer's id, or None if partitions had to be taken
        from other consumers and none could be.
        """
        if total_partitions < 0:
            raise ValueError("total_partitions must not be negative")

        with self._lock:
            group = self._group(queue_name, group_id)
            existing_consumers = set(group.values())
            per_consumer = total_partitions // (len(existing_consumers) + 1)

            to_assign = [p for p in range(total_partitions) if p not in group]

            if len(to_assign) < per_consumer:
                taken: set[int] = set()
                for _ in range(per_consumer - len(to_assign)):
                    consumer_id, count = self._consumer_with_most_partitions(group, taken)
                    if consumer_id == 0 or count == 1:
                        break
                    partition = next(
                        (
                            p
                            for p in range(total_partitions)
                            if p not in taken and group.get(p) == consumer_id
                        ),
                        None,
                    )
                    if partition is None:
                        break
                    taken.add(partition)
                    self._partition_counts[consumer_id] = count - 1
                    to_assign.append(partition)

                if not to_assign:
                    return None

            self.last_consumer_id += 1
            consumer_id = self.last_consumer_id
            self._partition_counts[consumer_id] = 0
            for partition in to_assign:
                group[partition] = consumer_id
                self._partition_counts[consumer_id] += 1
            return consumer_id

    def consumer_partitions(
        self, queue_name: str, group_id: str, consumer_id: int
    ) -> list[int]:
        """Return the partitions held by a consumer, in ascending order."""
        with self._lock:
            group = self._partition_consumers.get(queue_name, {}).get(group_id, {})
            return sorted(p for p, owner in group.items() if owner == consumer_id)

    def expire_consumer(
        self, queue_name: str, group_id: str, consumer_id: int
    ) -> list[int]:
        """Release every partition of an expired consumer and return them."""
        with self._lock:
            group = self._partition_consumers.get(queue_name, {}).get(group_id)
            if group is None:
                return []
            released = sorted(p for p, owner in group.items() if owner == consumer_id)
            for partition in released:
                del group[partition]
            self._partition_counts.pop(consumer_id, None)
            return released

    def consumer_partition_count(self, consumer_id: int) -> int:
        with self._lock:
            return self._partition_counts.get(consumer_id, 0)