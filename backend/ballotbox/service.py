"""
Ballot service: the operations the API exposes, composed from the store,
the lifecycle rules, the admission controller and the tabulation engine.

Each public method reads the clock once and passes that instant to every
lifecycle check it makes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from ballotbox.admission import Clock, VoteAdmissionController
from ballotbox.core.logger import ballot_logger as logger
from ballotbox.errors import DuplicateUrlToken, InvalidInput, NotFound
from ballotbox.ids import UrlTokenGenerator
from ballotbox.lifecycle import BallotLifecycle
from ballotbox.records import (
    Activity,
    ActivityType,
    Ballot,
    BallotDraft,
    BallotStatus,
    DurationMode,
    Ranking,
    ResultVisibility,
    VoteRecord,
)
from ballotbox.storage.base import BallotStore
from ballotbox.tabulation import TabulationOutput, tabulate

URL_TOKEN_ATTEMPTS = 5
EDITABLE_FIELDS = ("title", "description", "choices", "duration_mode", "time_limit", "vote_limit")


@dataclass
class BallotView:
    """A ballot as readers see it: persisted fields plus effective status."""

    ballot: Ballot
    status: BallotStatus
    vote_count: int

    @property
    def is_active(self) -> bool:
        return self.status is BallotStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        data = self.ballot.to_dict()
        data["status"] = self.status.value
        data["is_active"] = self.is_active
        data["vote_count"] = self.vote_count
        return data


@dataclass
class BallotResults:
    """Input for the results presenter.

    ``results`` is empty and ``total_votes`` is zero (unless configured to
    report the real count) whenever ``results_hidden`` is set.
    """

    ballot: Ballot
    status: BallotStatus
    total_votes: int
    results: TabulationOutput
    results_hidden: bool = False
    hidden_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        ballot = self.ballot.to_dict()
        ballot["status"] = self.status.value
        return {
            "ballot": ballot,
            "total_votes": self.total_votes,
            "results": self.results.to_dict(),
            "results_hidden": self.results_hidden,
            "hidden_reason": self.hidden_reason,
        }


@dataclass
class UserBallots:
    created: List[Ballot] = field(default_factory=list)
    voted: List[Ballot] = field(default_factory=list)


def _validated_fields(draft: BallotDraft, now: float) -> Dict[str, Any]:
    title = (draft.title or "").strip()
    if not title:
        raise InvalidInput("Please enter a ballot title")

    choices = [c.strip() for c in draft.choices if c and c.strip()]
    if len(choices) < 2:
        raise InvalidInput("Please provide at least 2 choices")
    if len(set(choices)) != len(choices):
        raise InvalidInput("Choices must be distinct")

    mode = DurationMode(draft.duration_mode)
    time_limit = None
    vote_limit = None
    if mode is DurationMode.TIME_LIMIT:
        if draft.time_limit is None or draft.time_limit <= now:
            raise InvalidInput("Time limit must be in the future")
        time_limit = float(draft.time_limit)
    elif mode is DurationMode.VOTE_LIMIT:
        if draft.vote_limit is None or draft.vote_limit <= 0:
            raise InvalidInput("Vote limit must be greater than 0")
        vote_limit = int(draft.vote_limit)

    description = (draft.description or "").strip() or None
    return {
        "title": title,
        "description": description,
        "choices": choices,
        "duration_mode": mode,
        "time_limit": time_limit,
        "vote_limit": vote_limit,
    }


def _unique(ids: Sequence[str]) -> List[str]:
    seen = set()
    out = []
    for ballot_id in ids:
        if ballot_id not in seen:
            seen.add(ballot_id)
            out.append(ballot_id)
    return out


class BallotService:
    def __init__(
        self,
        store: BallotStore,
        clock: Clock = time.time,
        token_generator: Optional[UrlTokenGenerator] = None,
        lifecycle: Optional[BallotLifecycle] = None,
        report_hidden_vote_count: bool = False,
    ) -> None:
        self.store = store
        self.lifecycle = lifecycle or BallotLifecycle()
        self.admission = VoteAdmissionController(store, self.lifecycle, clock)
        self.report_hidden_vote_count = report_hidden_vote_count
        self._clock = clock
        self._token_generator = token_generator or UrlTokenGenerator()

    # ---- helpers ----

    def _require_ballot(self, ballot_id: str) -> Ballot:
        ballot = self.store.get_ballot(ballot_id)
        if ballot is None:
            raise NotFound("Ballot not found")
        return ballot

    def _view(self, ballot: Ballot, now: float) -> BallotView:
        vote_count = self.store.count_votes(ballot.id)
        status = self.lifecycle.effective_status(ballot, vote_count, now)
        return BallotView(ballot=ballot, status=status, vote_count=vote_count)

    def _insert_with_url_token(self, ballot: Ballot) -> Ballot:
        # The lookup skips known tokens; the store still refuses one taken by a concurrent create.
        for _ in range(URL_TOKEN_ATTEMPTS):
            token = self._token_generator()
            if self.store.get_ballot_by_url(token) is not None:
                continue
            try:
                return self.store.insert_ballot(replace(ballot, url_token=token))
            except DuplicateUrlToken:
                logger.warning("url token collision on insert, drawing again")
        raise RuntimeError("could not generate a unique url token")

    # ---- ballots ----

    def create_ballot(self, actor: Optional[str], draft: BallotDraft, activate: bool = False) -> Ballot:
        now = self._clock()
        fields = _validated_fields(draft, now)
        ballot = Ballot(
            url_token="",
            created_at=now,
            creator_id=actor,
            status=BallotStatus.ACTIVE if activate else BallotStatus.DRAFT,
            result_visibility=ResultVisibility(draft.result_visibility),
            show_partial_results=draft.show_partial_results,
            results_visible_to_public=draft.results_visible_to_public,
            **fields,
        )
        stored = self._insert_with_url_token(ballot)
        if actor is not None:
            self.store.insert_activity(
                Activity(user_id=actor, ballot_id=stored.id, activity_type=ActivityType.CREATED, timestamp=now)
            )
        logger.info(f"Ballot {stored.id} created by {actor or 'anonymous'} status={stored.status.value}")
        return stored

    def get_ballot(self, ballot_id: str) -> BallotView:
        now = self._clock()
        return self._view(self._require_ballot(ballot_id), now)

    def get_ballot_by_url(self, url_token: str) -> BallotView:
        now = self._clock()
        ballot = self.store.get_ballot_by_url(url_token)
        if ballot is None:
            raise NotFound("Ballot not found")
        return self._view(ballot, now)

    def update_ballot(self, ballot_id: str, actor: Optional[str], **changes: Any) -> Ballot:
        now = self._clock()
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInput(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        ballot = self._require_ballot(ballot_id)
        self.lifecycle.check_editable(ballot, actor, self.store.count_votes(ballot_id))

        current = {name: getattr(ballot, name) for name in EDITABLE_FIELDS}
        # None leaves a field unchanged, except description where it clears the text
        current.update({k: v for k, v in changes.items() if v is not None or k == "description"})
        fields = _validated_fields(BallotDraft(**current), now)
        updated = self.store.patch_ballot(ballot_id, **fields)
        logger.info(f"Ballot {ballot_id} edited by {actor}")
        return updated

    def activate_ballot(self, ballot_id: str, actor: Optional[str]) -> Ballot:
        ballot = self._require_ballot(ballot_id)
        updated = self.store.patch_ballot(ballot_id, **self.lifecycle.activate(ballot, actor))
        logger.info(f"Ballot {ballot_id} activated by {actor}")
        return updated

    def close_ballot(self, ballot_id: str, actor: Optional[str]) -> Ballot:
        now = self._clock()
        ballot = self._require_ballot(ballot_id)
        updated = self.store.patch_ballot(ballot_id, **self.lifecycle.close(ballot, actor, now))
        logger.info(f"Ballot {ballot_id} closed by {actor}")
        return updated

    def delete_ballot(self, ballot_id: str, actor: Optional[str]) -> None:
        now = self._clock()
        view = self._view(self._require_ballot(ballot_id), now)
        self.lifecycle.check_deletable(view.ballot, actor, view.status)
        self.store.delete_ballot(ballot_id)
        logger.info(f"Ballot {ballot_id} deleted by {actor} with {view.vote_count} votes")

    def update_result_visibility(
        self,
        ballot_id: str,
        actor: Optional[str],
        result_visibility: Optional[ResultVisibility] = None,
        show_partial_results: Optional[bool] = None,
        results_visible_to_public: Optional[bool] = None,
    ) -> Ballot:
        ballot = self._require_ballot(ballot_id)
        self.lifecycle.check_creator(ballot, actor)
        updates: Dict[str, Any] = {}
        if result_visibility is not None:
            updates["result_visibility"] = ResultVisibility(result_visibility)
        if show_partial_results is not None:
            updates["show_partial_results"] = show_partial_results
        if results_visible_to_public is not None:
            updates["results_visible_to_public"] = results_visible_to_public
        if not updates:
            return ballot
        updated = self.store.patch_ballot(ballot_id, **updates)
        logger.info(f"Ballot {ballot_id} visibility updated by {actor}: {sorted(updates)}")
        return updated

    def claim_ballot(
        self, ballot_id: str, actor: Optional[str], anonymous_voter_id: Optional[str] = None
    ) -> Ballot:
        now = self._clock()
        ballot = self._require_ballot(ballot_id)
        self.lifecycle.check_claimable(ballot, actor)

        if ballot.creator_id is None:
            ballot = self.store.patch_ballot(ballot_id, creator_id=actor)
            self.store.insert_activity(
                Activity(user_id=actor, ballot_id=ballot_id, activity_type=ActivityType.CREATED, timestamp=now)
            )
            logger.info(f"Ballot {ballot_id} claimed by {actor}")

        if anonymous_voter_id and anonymous_voter_id != actor:
            moved = self.store.reassign_vote(ballot_id, anonymous_voter_id, actor)
            if moved is not None:
                self.store.insert_activity(
                    Activity(
                        user_id=actor,
                        ballot_id=ballot_id,
                        activity_type=ActivityType.VOTED,
                        timestamp=moved.submitted_at,
                    )
                )
                logger.info(f"Vote on ballot {ballot_id} moved from {anonymous_voter_id} to {actor}")
        return ballot

    def get_user_ballots(self, actor: Optional[str]) -> UserBallots:
        if actor is None:
            return UserBallots()
        activities = self.store.query_activity(actor)
        created = _unique([a.ballot_id for a in activities if a.activity_type is ActivityType.CREATED])
        voted = _unique([a.ballot_id for a in activities if a.activity_type is ActivityType.VOTED])
        return UserBallots(
            created=[b for b in (self.store.get_ballot(i) for i in created) if b is not None],
            voted=[b for b in (self.store.get_ballot(i) for i in voted) if b is not None],
        )

    # ---- votes and results ----

    def submit_vote(
        self,
        ballot_id: str,
        voter_id: str,
        rankings: Sequence[Ranking],
        actor: Optional[str] = None,
    ) -> VoteRecord:
        return self.admission.submit_vote(ballot_id, voter_id, rankings, actor=actor)

    def has_voted(self, ballot_id: str, voter_id: str) -> bool:
        return self.store.query_by_voter(ballot_id, voter_id) is not None

    def get_results(self, ballot_id: str, viewer: Optional[str]) -> BallotResults:
        now = self._clock()
        ballot = self._require_ballot(ballot_id)
        if ballot.duration_mode is DurationMode.VOTE_LIMIT:
            status = self.lifecycle.effective_status(ballot, self.store.count_votes(ballot_id), now)
        else:
            status = self.lifecycle.effective_status(ballot, 0, now)

        decision = self.lifecycle.can_see_results(ballot, viewer, status)
        if not decision.show:
            total = self.store.count_votes(ballot_id) if self.report_hidden_vote_count else 0
            return BallotResults(
                ballot=ballot,
                status=status,
                total_votes=total,
                results=TabulationOutput(),
                results_hidden=True,
                hidden_reason=decision.reason,
            )

        votes = self.store.query_by_ballot(ballot_id)
        output = tabulate(ballot.choices, [v.rankings for v in votes])
        if not ballot.show_partial_results:
            output = output.final_round_only()
        return BallotResults(ballot=ballot, status=status, total_votes=len(votes), results=output)


__all__ = ["BallotService", "BallotView", "BallotResults", "UserBallots"]
