from __future__ import annotations

import time
from typing import Callable, Optional, Sequence

from ballotbox.core.logger import ballot_logger as logger
from ballotbox.errors import BallotNotActive, DuplicateVote, InvalidInput, NotFound
from ballotbox.lifecycle import BallotLifecycle
from ballotbox.records import Activity, ActivityType, Ballot, DurationMode, Ranking, VoteRecord
from ballotbox.storage.base import BallotStore

Clock = Callable[[], float]


def _check_rankings(ballot: Ballot, rankings: Sequence[Ranking]) -> None:
    if not rankings:
        raise InvalidInput("Please rank at least one choice")
    seen = set()
    for ranking in rankings:
        if ranking.choice_index < 0 or ranking.choice_index >= len(ballot.choices):
            raise InvalidInput("Invalid choice index")
        if ranking.choice_index in seen:
            raise InvalidInput("Cannot rank the same choice multiple times")
        seen.add(ranking.choice_index)


class VoteAdmissionController:
    """Gate for vote submissions.

    Checks run in a fixed order, each with its own error: the ballot must
    exist, be effectively active, and not hold a vote from this voter yet.
    The final insert is delegated to the store, which repeats the duplicate
    and vote-limit checks atomically so concurrent submissions cannot
    slip past the pre-checks.
    """

    def __init__(
        self,
        store: BallotStore,
        lifecycle: Optional[BallotLifecycle] = None,
        clock: Clock = time.time,
    ) -> None:
        self.store = store
        self.lifecycle = lifecycle or BallotLifecycle()
        self._clock = clock

    def submit_vote(
        self,
        ballot_id: str,
        voter_id: str,
        rankings: Sequence[Ranking],
        actor: Optional[str] = None,
    ) -> VoteRecord:
        now = self._clock()

        ballot = self.store.get_ballot(ballot_id)
        if ballot is None:
            raise NotFound("Ballot not found")

        vote_count = self.store.count_votes(ballot_id)
        if not self.lifecycle.accepts_votes(ballot, vote_count, now):
            logger.warning(f"Vote refused for ballot {ballot_id} voter {voter_id}: ballot not active")
            raise BallotNotActive("Ballot is not active")

        if self.store.query_by_voter(ballot_id, voter_id) is not None:
            logger.warning(f"Vote refused for ballot {ballot_id} voter {voter_id}: already voted")
            raise DuplicateVote("You have already voted on this ballot")

        _check_rankings(ballot, rankings)

        max_votes = ballot.vote_limit if ballot.duration_mode is DurationMode.VOTE_LIMIT else None
        record = VoteRecord(
            ballot_id=ballot_id,
            voter_id=voter_id,
            rankings=list(rankings),
            submitted_at=now,
        )
        try:
            stored = self.store.insert_vote(record, max_votes=max_votes)
        except (DuplicateVote, BallotNotActive) as exc:
            logger.warning(f"Vote refused for ballot {ballot_id} voter {voter_id}: {exc.code} (concurrent)")
            raise

        if actor is not None:
            self.store.insert_activity(
                Activity(user_id=actor, ballot_id=ballot_id, activity_type=ActivityType.VOTED, timestamp=now)
            )
        logger.info(f"Vote accepted for ballot {ballot_id} voter {voter_id}")
        return stored


__all__ = ["VoteAdmissionController", "Clock"]
