from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from ballotbox.errors import BallotNotActive, DuplicateUrlToken, DuplicateVote, NotFound
from ballotbox.records import Activity, Ballot, VoteRecord
from ballotbox.storage.base import BallotStore

VoteKey = Tuple[str, str]


class InMemoryBallotStore(BallotStore):
    """In-process store for tests and local development.

    A single lock serialises every operation, which gives ``insert_vote`` and
    ``delete_ballot`` their atomicity. Records are copied on the way in and
    out so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ballots: Dict[str, Ballot] = {}
        self._votes: Dict[VoteKey, VoteRecord] = {}
        self._activity: List[Activity] = []

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    def get_ballot(self, ballot_id: str) -> Optional[Ballot]:
        with self._lock:
            ballot = self._ballots.get(ballot_id)
            return replace(ballot, choices=list(ballot.choices)) if ballot else None

    def get_ballot_by_url(self, url_token: str) -> Optional[Ballot]:
        with self._lock:
            for ballot in self._ballots.values():
                if ballot.url_token == url_token:
                    return replace(ballot, choices=list(ballot.choices))
            return None

    def insert_ballot(self, ballot: Ballot) -> Ballot:
        with self._lock:
            if any(b.url_token == ballot.url_token for b in self._ballots.values()):
                raise DuplicateUrlToken("url token already in use")
            stored = replace(ballot, id=self._new_id(), choices=list(ballot.choices))
            self._ballots[stored.id] = stored
            return replace(stored, choices=list(stored.choices))

    def patch_ballot(self, ballot_id: str, **fields: Any) -> Ballot:
        with self._lock:
            ballot = self._ballots.get(ballot_id)
            if ballot is None:
                raise NotFound("Ballot not found")
            stored = replace(ballot, **fields)
            self._ballots[ballot_id] = stored
            return replace(stored, choices=list(stored.choices))

    def delete_ballot(self, ballot_id: str) -> None:
        with self._lock:
            self._ballots.pop(ballot_id, None)
            for key in [k for k in self._votes if k[0] == ballot_id]:
                del self._votes[key]
            self._activity = [a for a in self._activity if a.ballot_id != ballot_id]

    def _ballot_vote_count(self, ballot_id: str) -> int:
        return sum(1 for key in self._votes if key[0] == ballot_id)

    def insert_vote(self, record: VoteRecord, max_votes: Optional[int] = None) -> VoteRecord:
        key = (record.ballot_id, record.voter_id)
        with self._lock:
            if key in self._votes:
                raise DuplicateVote("You have already voted on this ballot")
            if max_votes is not None and self._ballot_vote_count(record.ballot_id) >= max_votes:
                raise BallotNotActive("Ballot is not active")
            stored = replace(record, rankings=list(record.rankings))
            self._votes[key] = stored
            return replace(stored, rankings=list(stored.rankings))

    def query_by_ballot(self, ballot_id: str) -> List[VoteRecord]:
        with self._lock:
            # dicts keep insertion order, i.e. submission order
            return [replace(v, rankings=list(v.rankings)) for k, v in self._votes.items() if k[0] == ballot_id]

    def query_by_voter(self, ballot_id: str, voter_id: str) -> Optional[VoteRecord]:
        with self._lock:
            vote = self._votes.get((ballot_id, voter_id))
            return replace(vote, rankings=list(vote.rankings)) if vote else None

    def count_votes(self, ballot_id: str) -> int:
        with self._lock:
            return self._ballot_vote_count(ballot_id)

    def reassign_vote(self, ballot_id: str, from_voter: str, to_voter: str) -> Optional[VoteRecord]:
        with self._lock:
            source = (ballot_id, from_voter)
            target = (ballot_id, to_voter)
            if source not in self._votes or target in self._votes:
                return None
            moved = replace(self._votes.pop(source), voter_id=to_voter)
            self._votes[target] = moved
            return replace(moved, rankings=list(moved.rankings))

    def insert_activity(self, activity: Activity) -> None:
        with self._lock:
            self._activity.append(replace(activity))

    def query_activity(self, user_id: str) -> List[Activity]:
        with self._lock:
            return [replace(a) for a in self._activity if a.user_id == user_id]


__all__ = ["InMemoryBallotStore"]
