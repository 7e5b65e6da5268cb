"""
Ballot lifecycle: Draft -> Active -> Closed.

The persisted status only moves on creator actions. Automatic closure (time
limit passed, vote limit reached) is never written back; it is derived on
every read by ``effective_status`` so all callers see the same answer for
the same ``now`` and vote count.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ballotbox.errors import AlreadyActive, Forbidden, Unauthorized
from ballotbox.records import Ballot, BallotStatus, DurationMode, ResultVisibility

HIDDEN_NEVER = "Results are not visible for this ballot"
HIDDEN_AFTER_VOTING = "Results will be visible after voting ends"
HIDDEN_NOT_CURRENTLY = "Results are not currently visible"


@dataclass(frozen=True)
class VisibilityDecision:
    show: bool
    reason: Optional[str] = None


class BallotLifecycle:
    """Transition rules and visibility policy for ballots.

    Methods never touch storage. They validate a transition for an actor and
    return the fields the caller should patch, or raise.
    """

    def effective_status(self, ballot: Ballot, vote_count: int, now: float) -> BallotStatus:
        if ballot.status is not BallotStatus.ACTIVE:
            return ballot.status
        if (
            ballot.duration_mode is DurationMode.TIME_LIMIT
            and ballot.time_limit is not None
            and now > ballot.time_limit
        ):
            return BallotStatus.CLOSED
        if (
            ballot.duration_mode is DurationMode.VOTE_LIMIT
            and ballot.vote_limit is not None
            and vote_count >= ballot.vote_limit
        ):
            return BallotStatus.CLOSED
        return BallotStatus.ACTIVE

    def accepts_votes(self, ballot: Ballot, vote_count: int, now: float) -> bool:
        return self.effective_status(ballot, vote_count, now) is BallotStatus.ACTIVE

    # ---- creator-initiated transitions ----

    def check_creator(self, ballot: Ballot, actor: Optional[str]) -> None:
        if not ballot.is_creator(actor):
            raise Unauthorized("Not authorized to manage this ballot")

    def activate(self, ballot: Ballot, actor: Optional[str]) -> Dict[str, Any]:
        self.check_creator(ballot, actor)
        if ballot.status is not BallotStatus.DRAFT:
            raise AlreadyActive("Ballot is already active")
        return {"status": BallotStatus.ACTIVE}

    def close(self, ballot: Ballot, actor: Optional[str], now: float) -> Dict[str, Any]:
        self.check_creator(ballot, actor)
        if ballot.status is BallotStatus.CLOSED:
            raise Forbidden("Ballot is already closed")
        return {"status": BallotStatus.CLOSED, "closed_at": now}

    def check_editable(self, ballot: Ballot, actor: Optional[str], vote_count: int) -> None:
        if not ballot.is_creator(actor):
            raise Forbidden("Only the creator can edit this ballot")
        if ballot.status is not BallotStatus.DRAFT:
            raise Forbidden("Cannot edit an active ballot")
        if vote_count > 0:
            raise Forbidden("Cannot edit a ballot that has received votes")

    def check_deletable(self, ballot: Ballot, actor: Optional[str], effective: BallotStatus) -> None:
        self.check_creator(ballot, actor)
        if effective is BallotStatus.ACTIVE:
            raise Forbidden("Cannot delete an active ballot. Close it first.")

    def check_claimable(self, ballot: Ballot, actor: Optional[str]) -> None:
        if actor is None:
            raise Unauthorized("Must be logged in to claim ballot")
        if ballot.creator_id is not None and ballot.creator_id != actor:
            raise Forbidden("Ballot already belongs to another user")

    # ---- results visibility ----

    def can_see_results(
        self, ballot: Ballot, viewer: Optional[str], effective: BallotStatus
    ) -> VisibilityDecision:
        if ballot.is_creator(viewer):
            return VisibilityDecision(show=True)

        visibility = ballot.result_visibility
        if visibility is ResultVisibility.NEVER:
            return VisibilityDecision(show=False, reason=HIDDEN_NEVER)
        if visibility is ResultVisibility.MANUAL:
            # Unlocking is done by switching the ballot to LIVE.
            return VisibilityDecision(show=False, reason=HIDDEN_NOT_CURRENTLY)
        if visibility is ResultVisibility.AFTER_VOTING:
            if effective is BallotStatus.CLOSED:
                return VisibilityDecision(show=True)
            return VisibilityDecision(show=False, reason=HIDDEN_AFTER_VOTING)
        if ballot.results_visible_to_public:
            return VisibilityDecision(show=True)
        return VisibilityDecision(show=False, reason=HIDDEN_NOT_CURRENTLY)


__all__ = [
    "BallotLifecycle",
    "VisibilityDecision",
    "HIDDEN_NEVER",
    "HIDDEN_AFTER_VOTING",
    "HIDDEN_NOT_CURRENTLY",
]
