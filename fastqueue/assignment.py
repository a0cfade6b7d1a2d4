"""Placement of queue partitions and partition leaders on cluster nodes."""

from __future__ import annotations

import threading
import time
from typing import Callable

NO_NODE = -1

# Heartbeat markers: a node whose heartbeat expired is set to EXPIRED, and
# one whose partitions still need moving is set to NEEDS_REPARTITION. Any
# larger value is the time of the node's last heartbeat.
EXPIRED = 0
NEEDS_REPARTITION = 1


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class QueueAlreadyExistsError(Exception):
    """Raised when a queue with the same name has already been assigned."""


class TooFewAvailableNodesError(Exception):
    """Raised when there are fewer nodes than the replication factor needs."""


class NodeHeartbeats:
    """Last heartbeat time of every data node known to the controller."""

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._beats: dict[int, int] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._beats)

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._beats

    def update(self, node_id: int) -> None:
        with self._lock:
            self._beats[node_id] = self._clock()

    def is_alive(self, node_id: int) -> bool:
        """True if the node is tracked and its heartbeat has not expired."""
        with self._lock:
            return self._beats.get(node_id, EXPIRED) > NEEDS_REPARTITION

    def is_dead(self, node_id: int) -> bool:
        """True if the node is tracked and its heartbeat has expired."""
        with self._lock:
            return node_id in self._beats and self._beats[node_id] <= NEEDS_REPARTITION

    def expired_nodes(self, expire_ms: int) -> list[int]:
        """Mark nodes silent for over ``expire_ms`` as expired and return them.

        Nodes already marked expired are not reported again.
        """
        now = self._clock()
        expired: list[int] = []
        with self._lock:
            for node_id, beat in self._beats.items():
                if beat != EXPIRED and now - beat > expire_ms:
                    self._beats[node_id] = EXPIRED
                    expired.append(node_id)
        return expired

    def active_nodes_count(self) -> int:
        """Number of live nodes, counting the controller itself."""
        with self._lock:
            return 1 + sum(1 for beat in self._beats.values() if beat > NEEDS_REPARTITION)

    def remove(self, node_id: int) -> None:
        with self._lock:
            self._beats.pop(node_id, None)

    def _mark_needs_repartition(self, node_id: int) -> None:
        with self._lock:
            self._beats[node_id] = NEEDS_REPARTITION


class PartitionAssigner:
    """Decides which nodes own each partition and which owner leads it.

    Partitions go to the registered node with the fewest partitions that is
    not known to be dead and does not already hold the partition. Leaders are
    chosen among the live owners with the fewest led partitions.
    """

    def __init__(self, node_id: int, heartbeats: NodeHeartbeats) -> None:
        self.node_id = node_id
        self.heartbeats = heartbeats
        self.last_queue_partition_leader_id = 0

        self._partition_counts: dict[int, int] = {}
        self._leader_counts: dict[int, int] = {}
        self._nodes_partitions: dict[int, dict[str, set[int]]] = {}
        self._owned_partitions: dict[str, dict[int, set[int]]] = {}
        self._partition_leaders: dict[str, dict[int, int]] = {}
        self._leader_ids: dict[str, dict[int, int]] = {}
        self._queues: dict[str, tuple[int, int]] = {}
        self._lock = threading.RLock()

    def register_node(self, node_id: int) -> None:
        """Make ``node_id`` available for partition placement."""
        with self._lock:
            self._partition_counts.setdefault(node_id, 0)
            self._nodes_partitions.setdefault(node_id, {})

    def _placeable(self, node_id: int) -> bool:
        return node_id == self.node_id or not self.heartbeats.is_dead(node_id)

    def _owners(self, queue_name: str, partition: int) -> set[int]:
        return self._owned_partitions.setdefault(queue_name, {}).setdefault(partition, set())

    def assign_partition(
        self, queue_name: str, partition: int, owner_node: int = NO_NODE
    ) -> int | None:
        """Place a replica of ``partition`` on the least loaded eligible node.

        With ``owner_node`` the replica is moved away from that node. Returns
        the node chosen, or None if no node could take it.
        """
        with self._lock:
            owners = self._owners(queue_name, partition)
            candidates = sorted(
                self._partition_counts, key=lambda n: (self._partition_counts[n], n)
            )
            chosen = next(
                (
                    node
                    for node in candidates
                    if self._placeable(node)
                    and partition
                    not in self._nodes_partitions.setdefault(node, {}).get(queue_name, ())
                ),
                None,
            )
            if chosen is None:
                return None

            self._nodes_partitions[chosen].setdefault(queue_name, set()).add(partition)
            owners.add(chosen)
            self._partition_counts[chosen] += 1

            if owner_node == NO_NODE:
                return chosen

            owner_queues = self._nodes_partitions.get(owner_node, {})
            owner_parts = owner_queues.get(queue_name)
            if owner_parts is not None:
                owner_parts.discard(partition)
                if not owner_parts:
                    del owner_queues[queue_name]
            if owner_node in self._partition_counts:
                self._partition_counts[owner_node] -= 1
            owners.discard(owner_node)
            return chosen

    def assign_partition_leader(
        self, queue_name: str, partition: int, leader_node: int = NO_NODE
    ) -> int | None:
        """Choose a leader for ``partition`` among its live owners.

        With ``leader_node`` leadership is moved away from that node; if the
        partition is already led by another node, that leader is kept.
        Returns the leader, or None if no owner could lead.
        """
        with self._lock:
            owners = self._owners(queue_name, partition)
            leaders = self._partition_leaders.setdefault(queue_name, {})

            current = leaders.get(partition)
            if leader_node != NO_NODE and current is not None and current != leader_node:
                return current

            chosen: int | None = None
            min_count: int | None = None
            for owner in sorted(owners):
                if owner == leader_node:
                    continue
                if owner != self.node_id and not self.heartbeats.is_alive(owner):
                    continue
                count = self._leader_counts.get(owner, 0)
                if min_count is None or count < min_count:
                    chosen, min_count = owner, count

            if chosen is None:
                return None

            leaders[partition] = chosen
            self._leader_counts[chosen] = (min_count or 0) + 1
            self.last_queue_partition_leader_id += 1
            self._leader_ids.setdefault(queue_name, {})[partition] = (
                self.last_queue_partition_leader_id
            )

            if leader_node != NO_NODE:
                self._leader_counts[leader_node] = self._leader_counts.get(leader_node, 0) - 1
            return chosen

    def assign_new_queue(
        self, queue_name: str, partitions: int, replication_factor: int
    ) -> None:
        """Place every replica of a new queue's partitions and pick leaders."""
        with self._lock:
            if queue_name in self._queues:
                raise QueueAlreadyExistsError(queue_name)
            if replication_factor > len(self.heartbeats) + 1:
                raise TooFewAvailableNodesError(
                    f"replication factor {replication_factor} exceeds available nodes"
                )
            self._queues[queue_name] = (partitions, replication_factor)

            for _ in range(replication_factor):
                for partition in range(partitions):
                    self.assign_partition(queue_name, partition)

            for partition in range(partitions):
                self.assign_partition_leader(queue_name, partition)

    def partition_owners(self, queue_name: str, partition: int) -> frozenset[int]:
        with self._lock:
            return frozenset(
                self._owned_partitions.get(queue_name, {}).get(partition, ())
            )

    def partition_leader(self, queue_name: str, partition: int) -> int | None:
        with self._lock:
            return self._partition_leaders.get(queue_name, {}).get(partition)

    def node_partition_count(self, node_id: int) -> int:
        with self._lock:
            return self._partition_counts.get(node_id, 0)