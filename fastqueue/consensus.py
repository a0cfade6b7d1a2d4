"""Leader election state for the controller quorum."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

NO_VOTE = -1


class NodeState(Enum):
    FOLLOWER = "follower"
    CANDIDATE = "candidate"
    LEADER = "leader"


@dataclass(frozen=True)
class VoteResponse:
    """Reply to a candidate's vote request."""

    term: int
    vote_granted: bool


def quorum_size(total_controllers: int) -> int:
    """Number of votes that makes a majority of ``total_controllers``."""
    if total_controllers < 0:
        raise ValueError("total_controllers must not be negative")
    return total_controllers // 2 + 1


def get_largest_replicated_index(
    indexes_sent: Iterable[int], half_nodes_count: int
) -> int:
    """Return the largest log index that enough nodes have been sent.

    The indexes are sorted and scanned for runs of equal values; the last
    value whose run reaches ``half_nodes_count`` repeats is the result, and
    the smallest index otherwise.
    """
    ordered = sorted(indexes_sent)
    if not ordered:
        return 0

    largest = ordered[0]
    counter = half_nodes_count
    prev = largest
    for current in ordered[1:]:
        counter = counter - 1 if current == prev else half_nodes_count
        if counter == 0:
            largest = current
        prev = current
    return largest


class ElectionState:
    """Term, vote and role of one controller node.

    The state machine follows the usual cycle: a follower that misses the
    leader's heartbeat becomes a candidate, a candidate that gathers a quorum
    of votes becomes the leader, and any node seeing a newer leader or
    granting a vote to another candidate falls back to follower.
    """

    def __init__(
        self,
        node_id: int,
        controller_ids: Sequence[int],
        is_controller_node: bool = True,
    ) -> None:
        self.node_id = node_id
        self.controller_ids = tuple(controller_ids)
        self.is_the_only_controller_node = (
            is_controller_node and len(self.controller_ids) == 1
        )
        self.half_quorum_nodes_count = quorum_size(len(self.controller_ids))

        self.term = 0
        self.last_log_index = 0
        self.last_log_term = 0
        self.vote_for = NO_VOTE
        self.received_heartbeat = False
        self.leader_id = 0

        self._lock = threading.RLock()
        self._state = (
            NodeState.LEADER if self.is_the_only_controller_node else NodeState.FOLLOWER
        )
        if self._state is NodeState.LEADER:
            self.leader_id = node_id

    @property
    def state(self) -> NodeState:
        with self._lock:
            return self._state

    @state.setter
    def state(self, value: NodeState) -> None:
        with self._lock:
            self._state = value

    def _try_vote(self, candidate_id: int) -> bool:
        if self.vote_for == NO_VOTE:
            self.vote_for = candidate_id
            return True
        return False

    def begin_election(self) -> int | None:
        """Vote for this node and open a new term.

        Returns the new term, or None if a vote was already cast for another
        candidate, in which case the node returns to follower.
        """
        with self._lock:
            if not self._try_vote(self.node_id):
                self._state = NodeState.FOLLOWER
                return None
            self.term += 1
            return self.term

    def handle_request_vote(
        self, term: int, candidate_id: int, last_log_term: int, last_log_index: int
    ) -> VoteResponse:
        """Decide whether to vote for a candidate."""
        with self._lock:
            reply_term = self.term
            granted = (
                term >= self.term
                and last_log_term >= self.last_log_term
                and last_log_index >= self.last_log_index
                and (self._try_vote(candidate_id) or self.vote_for == candidate_id)
            )
            if term > self.term:
                self.term = term
            if granted and self._state is NodeState.LEADER:
                self._state = NodeState.FOLLOWER
            return VoteResponse(reply_term, granted)

    def handle_append_entries(self, term: int, leader_id: int) -> bool:
        """Accept a heartbeat from a leader unless its term is stale."""
        with self._lock:
            if self.term > term:
                return False
            if self._state is NodeState.LEADER:
                self._state = NodeState.FOLLOWER
            self.received_heartbeat = True
            self.leader_id = leader_id
            if term > self.term:
                self.term = term
            return True

    def finish_election(self, votes: int) -> bool:
        """Close the election with ``votes`` collected; True if now leader."""
        with self._lock:
            self.vote_for = NO_VOTE
            if votes < self.half_quorum_nodes_count:
                self._state = NodeState.FOLLOWER
                return False
            self._state = NodeState.LEADER
            self.leader_id = self.node_id
            return True

    def observe_term(self, term: int) -> bool:
        """Adopt ``term`` if it is newer than the current one."""
        with self._lock:
            if term > self.term:
                self.term = term
                return True
            return False

    def heartbeat_timed_out(self) -> bool:
        """Handle the end of a heartbeat wait.

        If a heartbeat arrived, the flag is reset and False is returned.
        Otherwise the vote is cleared, the node becomes a candidate and True
        is returned.
        """
        with self._lock:
            if self.received_heartbeat:
                self.received_heartbeat = False
                return False
            self.vote_for = NO_VOTE
            self._state = NodeState.CANDIDATE
            return True

    def step_down_to_follower(self) -> None:
        with self._lock:
            self._state = NodeState.FOLLOWER