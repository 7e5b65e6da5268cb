"""Core records shared by the store, the lifecycle and the tabulation engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class BallotStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class DurationMode(str, Enum):
    MANUAL = "manual"
    TIME_LIMIT = "time"
    VOTE_LIMIT = "count"


class ResultVisibility(str, Enum):
    LIVE = "live"
    AFTER_VOTING = "after_voting"
    MANUAL = "manual"
    NEVER = "never"


class ActivityType(str, Enum):
    CREATED = "created"
    VOTED = "voted"


@dataclass(frozen=True)
class Ranking:
    """One entry of a voter's ranking: ``rank`` 1 is the most preferred."""

    choice_index: int
    rank: int

    def to_dict(self) -> Dict[str, int]:
        return {"choice_index": self.choice_index, "rank": self.rank}


@dataclass
class Ballot:
    """A single poll with its choices and settings.

    Attributes:
        id: Opaque identifier assigned by the store on insert
        url_token: Public token used in share links
        choices: Display labels; the index into this list is the choice identity
        creator_id: Actor who owns the ballot, None for anonymous ballots
        time_limit: Epoch seconds after which voting ends (TIME_LIMIT only)
        vote_limit: Number of votes after which voting ends (VOTE_LIMIT only)
        status: Persisted status; see BallotLifecycle.effective_status for
            the status after lazy auto-closure
    """
    title: str
    choices: List[str]
    url_token: str
    created_at: float
    description: Optional[str] = None
    creator_id: Optional[str] = None
    duration_mode: DurationMode = DurationMode.MANUAL
    time_limit: Optional[float] = None
    vote_limit: Optional[int] = None
    status: BallotStatus = BallotStatus.DRAFT
    closed_at: Optional[float] = None
    result_visibility: ResultVisibility = ResultVisibility.LIVE
    show_partial_results: bool = True
    results_visible_to_public: bool = True
    id: Optional[str] = None

    def is_creator(self, actor: Optional[str]) -> bool:
        return actor is not None and self.creator_id is not None and self.creator_id == actor

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url_token": self.url_token,
            "title": self.title,
            "description": self.description,
            "choices": list(self.choices),
            "creator_id": self.creator_id,
            "created_at": self.created_at,
            "duration_mode": self.duration_mode.value,
            "time_limit": self.time_limit,
            "vote_limit": self.vote_limit,
            "status": self.status.value,
            "closed_at": self.closed_at,
            "result_visibility": self.result_visibility.value,
            "show_partial_results": self.show_partial_results,
            "results_visible_to_public": self.results_visible_to_public,
        }


@dataclass
class VoteRecord:
    ballot_id: str
    voter_id: str
    rankings: List[Ranking]
    submitted_at: float


@dataclass
class Activity:
    user_id: str
    ballot_id: str
    activity_type: ActivityType
    timestamp: float


@dataclass
class BallotDraft:
    """Creator-supplied fields for a new ballot, before validation."""

    title: str
    choices: List[str]
    description: Optional[str] = None
    duration_mode: DurationMode = DurationMode.MANUAL
    time_limit: Optional[float] = None
    vote_limit: Optional[int] = None
    result_visibility: ResultVisibility = ResultVisibility.LIVE
    show_partial_results: bool = True
    results_visible_to_public: bool = True


__all__ = [
    "BallotStatus",
    "DurationMode",
    "ResultVisibility",
    "ActivityType",
    "Ranking",
    "Ballot",
    "VoteRecord",
    "Activity",
    "BallotDraft",
]
