"""Abstract storage interface for ballots, votes and activity records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ballotbox.records import Activity, Ballot, VoteRecord


class BallotStore(ABC):
    """Durable keyed storage used by the ballot core.

    Implementations must make ``insert_vote`` atomic: the duplicate check on
    ``(ballot_id, voter_id)``, the optional vote-limit check and the insert
    are observed as one step by concurrent callers. ``delete_ballot`` must
    remove the ballot, its votes and its activity records all together or
    not at all.
    """

    @abstractmethod
    def get_ballot(self, ballot_id: str) -> Optional[Ballot]:
        pass

    @abstractmethod
    def get_ballot_by_url(self, url_token: str) -> Optional[Ballot]:
        pass

    @abstractmethod
    def insert_ballot(self, ballot: Ballot) -> Ballot:
        """Store a new ballot and return it with its ``id`` assigned.

        Raises:
            DuplicateUrlToken: another ballot already holds ``url_token``
        """
        pass

    @abstractmethod
    def patch_ballot(self, ballot_id: str, **fields: Any) -> Ballot:
        """Update the given fields and return the stored ballot.

        Raises:
            NotFound: no ballot with this id
        """
        pass

    @abstractmethod
    def delete_ballot(self, ballot_id: str) -> None:
        pass

    @abstractmethod
    def insert_vote(self, record: VoteRecord, max_votes: Optional[int] = None) -> VoteRecord:
        """Atomically admit one vote.

        Raises:
            DuplicateVote: a record for ``(ballot_id, voter_id)`` exists
            BallotNotActive: ``max_votes`` is set and already reached
        """
        pass

    @abstractmethod
    def query_by_ballot(self, ballot_id: str) -> List[VoteRecord]:
        """All votes for a ballot, in submission order."""
        pass

    @abstractmethod
    def query_by_voter(self, ballot_id: str, voter_id: str) -> Optional[VoteRecord]:
        pass

    @abstractmethod
    def count_votes(self, ballot_id: str) -> int:
        pass

    @abstractmethod
    def reassign_vote(self, ballot_id: str, from_voter: str, to_voter: str) -> Optional[VoteRecord]:
        """Move a voter's record to another voter id.

        Returns the moved record, or None when ``from_voter`` has no vote or
        ``to_voter`` already has one on this ballot.
        """
        pass

    @abstractmethod
    def insert_activity(self, activity: Activity) -> None:
        pass

    @abstractmethod
    def query_activity(self, user_id: str) -> List[Activity]:
        pass
