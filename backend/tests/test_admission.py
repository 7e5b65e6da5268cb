import threading

import pytest

from ballotbox.admission import VoteAdmissionController
from ballotbox.errors import BallotNotActive, DuplicateVote, InvalidInput, NotFound
from ballotbox.records import ActivityType, DurationMode, Ranking


def test_accepts_vote_and_stamps_time(service, store, clock, active_ballot, rank):
    ballot = active_ballot()
    record = service.submit_vote(ballot.id, "voter-1", rank(1, 0))
    assert record.submitted_at == clock.now
    assert store.count_votes(ballot.id) == 1
    assert store.query_by_voter(ballot.id, "voter-1").rankings == rank(1, 0)


def test_unknown_ballot_is_not_found(service, rank):
    with pytest.raises(NotFound):
        service.submit_vote("missing", "voter-1", rank(0))


def test_draft_ballot_rejects_votes(service, make_draft, rank):
    ballot = service.create_ballot("alice", make_draft())
    with pytest.raises(BallotNotActive):
        service.submit_vote(ballot.id, "voter-1", rank(0))


def test_closed_ballot_rejects_votes(service, active_ballot, rank):
    ballot = active_ballot()
    service.close_ballot(ballot.id, "alice")
    with pytest.raises(BallotNotActive):
        service.submit_vote(ballot.id, "voter-1", rank(0))


def test_second_vote_from_same_voter_is_duplicate(service, store, active_ballot, rank):
    ballot = active_ballot()
    service.submit_vote(ballot.id, "voter-1", rank(0))
    with pytest.raises(DuplicateVote):
        service.submit_vote(ballot.id, "voter-1", rank(1))
    assert store.query_by_voter(ballot.id, "voter-1").rankings == rank(0)


def test_inactive_is_reported_before_duplicate(service, active_ballot, rank):
    ballot = active_ballot()
    service.submit_vote(ballot.id, "voter-1", rank(0))
    service.close_ballot(ballot.id, "alice")
    with pytest.raises(BallotNotActive):
        service.submit_vote(ballot.id, "voter-1", rank(0))


def test_time_limit_is_checked_lazily(service, clock, active_ballot, rank):
    ballot = active_ballot(duration_mode=DurationMode.TIME_LIMIT, time_limit=clock.now + 60)
    service.submit_vote(ballot.id, "early", rank(0))
    clock.advance(61)
    with pytest.raises(BallotNotActive):
        service.submit_vote(ballot.id, "late", rank(0))


def test_vote_limit_refuses_the_fourth_vote(service, store, active_ballot, rank):
    ballot = active_ballot(duration_mode=DurationMode.VOTE_LIMIT, vote_limit=3)
    for voter in ("v1", "v2", "v3"):
        service.submit_vote(ballot.id, voter, rank(0))
    with pytest.raises(BallotNotActive):
        service.submit_vote(ballot.id, "v4", rank(0))
    assert store.count_votes(ballot.id) == 3


@pytest.mark.parametrize(
    "rankings",
    [
        [],
        [Ranking(choice_index=3, rank=1)],
        [Ranking(choice_index=-1, rank=1)],
        [Ranking(choice_index=0, rank=1), Ranking(choice_index=0, rank=2)],
    ],
)
def test_malformed_rankings_are_invalid(service, active_ballot, rankings):
    ballot = active_ballot()
    with pytest.raises(InvalidInput):
        service.submit_vote(ballot.id, "voter-1", rankings)


def test_partial_ranking_is_accepted(service, active_ballot):
    ballot = active_ballot()
    service.submit_vote(ballot.id, "voter-1", [Ranking(choice_index=2, rank=4)])


def test_authenticated_vote_records_activity(service, store, active_ballot, rank):
    ballot = active_ballot()
    service.submit_vote(ballot.id, "bob", rank(0), actor="bob")
    service.submit_vote(ballot.id, "anon-token", rank(1))
    activity = store.query_activity("bob")
    assert [(a.ballot_id, a.activity_type) for a in activity] == [(ballot.id, ActivityType.VOTED)]


def test_store_race_surfaces_as_duplicate(store, clock, service, active_ballot, rank):
    ballot = active_ballot()

    class RacingStore:
        """Lets the pre-check pass, as if a concurrent insert landed in between."""

        def __getattr__(self, name):
            return getattr(store, name)

        def query_by_voter(self, ballot_id, voter_id):
            return None

    service.submit_vote(ballot.id, "voter-1", rank(0))
    controller = VoteAdmissionController(RacingStore(), clock=clock)
    with pytest.raises(DuplicateVote):
        controller.submit_vote(ballot.id, "voter-1", rank(1))


def test_concurrent_submissions_admit_exactly_one(service, store, active_ballot, rank):
    ballot = active_ballot()
    workers = 12
    barrier = threading.Barrier(workers)
    outcomes = []

    def submit():
        barrier.wait()
        try:
            service.submit_vote(ballot.id, "same-voter", rank(0))
            outcomes.append("ok")
        except DuplicateVote:
            outcomes.append("duplicate")

    threads = [threading.Thread(target=submit) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("duplicate") == workers - 1
    assert store.count_votes(ballot.id) == 1


def test_concurrent_burst_respects_vote_limit(service, store, active_ballot, rank):
    ballot = active_ballot(duration_mode=DurationMode.VOTE_LIMIT, vote_limit=3)
    workers = 10
    barrier = threading.Barrier(workers)
    outcomes = []

    def submit(voter):
        barrier.wait()
        try:
            service.submit_vote(ballot.id, voter, rank(0))
            outcomes.append("ok")
        except BallotNotActive:
            outcomes.append("closed")

    threads = [threading.Thread(target=submit, args=(f"v{i}",)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 3
    assert store.count_votes(ballot.id) == 3
