import pytest

from fastqueue.consensus import (
    ElectionState,
    NodeState,
    VoteResponse,
    get_largest_replicated_index,
    quorum_size,
)


@pytest.mark.parametrize("total", range(1, 10))
def test_quorum_size_is_a_majority(total):
    q = quorum_size(total)
    assert q * 2 > total
    assert (q - 1) * 2 <= total


def test_quorum_size_rejects_negative():
    with pytest.raises(ValueError):
        quorum_size(-1)


def test_largest_replicated_index_empty():
    assert get_largest_replicated_index([], 2) == 0


def test_largest_replicated_index_single_value():
    assert get_largest_replicated_index([42], 1) == 42


def test_largest_replicated_index_does_not_mutate_input():
    indexes = [9, 3, 7]
    get_largest_replicated_index(indexes, 2)
    assert indexes == [9, 3, 7]


def test_largest_replicated_index_distinct_values_gives_smallest():
    indexes = [9, 3, 7, 12]
    assert get_largest_replicated_index(indexes, 2) == min(indexes)


def test_largest_replicated_index_repeated_value_is_chosen():
    indexes = [15, 4, 15, 15]
    assert get_largest_replicated_index(indexes, 2) == 15


def test_largest_replicated_index_result_comes_from_input():
    indexes = [8, 8, 2, 8, 11, 11]
    assert get_largest_replicated_index(indexes, 2) in indexes


def make_cluster_node(node_id=2):
    return ElectionState(node_id, [1, 2, 3])


def test_single_controller_starts_as_leader():
    node = ElectionState(5, [5])
    assert node.state is NodeState.LEADER
    assert node.leader_id == 5


def test_multi_controller_starts_as_follower():
    node = make_cluster_node()
    assert node.state is NodeState.FOLLOWER
    assert node.half_quorum_nodes_count == quorum_size(3)


def test_begin_election_opens_new_term_and_votes_for_self():
    node = make_cluster_node()
    before = node.term
    term = node.begin_election()
    assert term == before + 1
    assert node.vote_for == node.node_id


def test_begin_election_after_voting_returns_to_follower():
    node = make_cluster_node()
    node.state = NodeState.CANDIDATE
    node.handle_request_vote(1, 3, 0, 0)
    assert node.begin_election() is None
    assert node.state is NodeState.FOLLOWER


def test_finish_election_with_quorum_becomes_leader():
    node = make_cluster_node()
    node.begin_election()
    assert node.finish_election(node.half_quorum_nodes_count) is True
    assert node.state is NodeState.LEADER
    assert node.leader_id == node.node_id
    assert node.vote_for == -1


def test_finish_election_without_quorum_steps_down():
    node = make_cluster_node()
    node.begin_election()
    assert node.finish_election(node.half_quorum_nodes_count - 1) is False
    assert node.state is NodeState.FOLLOWER


def test_vote_granted_and_term_adopted():
    node = make_cluster_node()
    response = node.handle_request_vote(4, 3, 0, 0)
    assert response == VoteResponse(0, True)
    assert node.term == 4
    assert node.vote_for == 3


def test_vote_denied_to_second_candidate_but_repeated_for_first():
    node = make_cluster_node()
    assert node.handle_request_vote(1, 3, 0, 0).vote_granted
    assert not node.handle_request_vote(1, 1, 0, 0).vote_granted
    assert node.handle_request_vote(1, 3, 0, 0).vote_granted


def test_vote_denied_for_stale_term_or_log():
    node = make_cluster_node()
    node.observe_term(5)
    assert not node.handle_request_vote(4, 3, 0, 0).vote_granted
    node.last_log_index = 10
    assert not node.handle_request_vote(6, 3, 0, 9).vote_granted
    assert node.vote_for == -1


def test_leader_steps_down_when_granting_vote():
    node = make_cluster_node()
    node.begin_election()
    node.finish_election(3)
    response = node.handle_request_vote(node.term + 1, 3, 0, 0)
    assert response.vote_granted
    assert node.state is NodeState.FOLLOWER


def test_append_entries_with_stale_term_rejected():
    node = make_cluster_node()
    node.observe_term(3)
    assert node.handle_append_entries(2, 1) is False
    assert node.received_heartbeat is False


def test_append_entries_accepted_records_leader_and_term():
    node = make_cluster_node()
    node.begin_election()
    node.finish_election(3)
    assert node.handle_append_entries(7, 1) is True
    assert node.leader_id == 1
    assert node.term == 7
    assert node.state is NodeState.FOLLOWER


def test_heartbeat_timeout_cycle():
    node = make_cluster_node()
    node.handle_append_entries(1, 1)
    assert node.heartbeat_timed_out() is False
    assert node.state is NodeState.FOLLOWER
    assert node.heartbeat_timed_out() is True
    assert node.state is NodeState.CANDIDATE
    assert node.vote_for == -1


def test_observe_term_only_moves_forward():
    node = make_cluster_node()
    assert node.observe_term(4) is True
    assert node.observe_term(2) is False
    assert node.term == 4


def test_step_down_to_follower():
    node = ElectionState(1, [1])
    node.step_down_to_follower()
    assert node.state is NodeState.FOLLOWER