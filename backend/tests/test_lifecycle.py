import pytest

from ballotbox.errors import AlreadyActive, Forbidden, Unauthorized
from ballotbox.lifecycle import (
    HIDDEN_AFTER_VOTING,
    HIDDEN_NEVER,
    HIDDEN_NOT_CURRENTLY,
    BallotLifecycle,
)
from ballotbox.records import Ballot, BallotStatus, DurationMode, ResultVisibility

NOW = 1_000.0

lifecycle = BallotLifecycle()


def make_ballot(**overrides) -> Ballot:
    fields = {
        "id": "b1",
        "title": "Board chair",
        "choices": ["Ann", "Ben"],
        "url_token": "tok",
        "created_at": 0.0,
        "creator_id": "alice",
        "status": BallotStatus.ACTIVE,
    }
    fields.update(overrides)
    return Ballot(**fields)


# ---- effective status ----

def test_manual_ballot_stays_active():
    ballot = make_ballot()
    assert lifecycle.effective_status(ballot, 10_000, NOW) is BallotStatus.ACTIVE


def test_time_limit_closes_after_deadline_only():
    ballot = make_ballot(duration_mode=DurationMode.TIME_LIMIT, time_limit=NOW)
    assert lifecycle.effective_status(ballot, 0, NOW) is BallotStatus.ACTIVE
    assert lifecycle.effective_status(ballot, 0, NOW + 0.001) is BallotStatus.CLOSED


def test_vote_limit_closes_once_reached():
    ballot = make_ballot(duration_mode=DurationMode.VOTE_LIMIT, vote_limit=3)
    assert lifecycle.accepts_votes(ballot, 2, NOW)
    assert lifecycle.effective_status(ballot, 3, NOW) is BallotStatus.CLOSED
    assert not lifecycle.accepts_votes(ballot, 4, NOW)


def test_draft_and_closed_are_not_downgraded():
    draft = make_ballot(status=BallotStatus.DRAFT, duration_mode=DurationMode.TIME_LIMIT, time_limit=0.0)
    assert lifecycle.effective_status(draft, 0, NOW) is BallotStatus.DRAFT
    assert not lifecycle.accepts_votes(draft, 0, NOW)
    closed = make_ballot(status=BallotStatus.CLOSED)
    assert lifecycle.effective_status(closed, 0, NOW) is BallotStatus.CLOSED


# ---- transitions ----

def test_activate_draft_by_creator():
    ballot = make_ballot(status=BallotStatus.DRAFT)
    assert lifecycle.activate(ballot, "alice") == {"status": BallotStatus.ACTIVE}


@pytest.mark.parametrize("actor", ["mallory", None])
def test_activate_requires_creator(actor):
    with pytest.raises(Unauthorized):
        lifecycle.activate(make_ballot(status=BallotStatus.DRAFT), actor)


@pytest.mark.parametrize("status", [BallotStatus.ACTIVE, BallotStatus.CLOSED])
def test_activate_outside_draft_fails(status):
    with pytest.raises(AlreadyActive):
        lifecycle.activate(make_ballot(status=status), "alice")


def test_anonymous_ballot_has_no_creator_to_match():
    ballot = make_ballot(creator_id=None, status=BallotStatus.DRAFT)
    with pytest.raises(Unauthorized):
        lifecycle.activate(ballot, None)


def test_close_sets_closed_at():
    patch = lifecycle.close(make_ballot(), "alice", NOW)
    assert patch == {"status": BallotStatus.CLOSED, "closed_at": NOW}


def test_close_draft_is_allowed_but_closed_is_not():
    assert lifecycle.close(make_ballot(status=BallotStatus.DRAFT), "alice", NOW)["status"] is BallotStatus.CLOSED
    with pytest.raises(Forbidden):
        lifecycle.close(make_ballot(status=BallotStatus.CLOSED), "alice", NOW)


def test_close_requires_creator():
    with pytest.raises(Unauthorized):
        lifecycle.close(make_ballot(), "bob", NOW)


def test_edit_rules():
    lifecycle.check_editable(make_ballot(status=BallotStatus.DRAFT), "alice", 0)
    with pytest.raises(Forbidden):
        lifecycle.check_editable(make_ballot(status=BallotStatus.DRAFT), "bob", 0)
    with pytest.raises(Forbidden):
        lifecycle.check_editable(make_ballot(status=BallotStatus.DRAFT, creator_id=None), None, 0)
    with pytest.raises(Forbidden):
        lifecycle.check_editable(make_ballot(status=BallotStatus.ACTIVE), "alice", 0)
    with pytest.raises(Forbidden):
        lifecycle.check_editable(make_ballot(status=BallotStatus.DRAFT), "alice", 1)


def test_delete_refused_while_effectively_active():
    ballot = make_ballot()
    with pytest.raises(Forbidden):
        lifecycle.check_deletable(ballot, "alice", BallotStatus.ACTIVE)
    lifecycle.check_deletable(ballot, "alice", BallotStatus.CLOSED)
    lifecycle.check_deletable(make_ballot(status=BallotStatus.DRAFT), "alice", BallotStatus.DRAFT)
    with pytest.raises(Unauthorized):
        lifecycle.check_deletable(ballot, "bob", BallotStatus.CLOSED)


def test_claim_rules():
    lifecycle.check_claimable(make_ballot(creator_id=None), "bob")
    lifecycle.check_claimable(make_ballot(creator_id="bob"), "bob")
    with pytest.raises(Forbidden):
        lifecycle.check_claimable(make_ballot(creator_id="alice"), "bob")
    with pytest.raises(Unauthorized):
        lifecycle.check_claimable(make_ballot(creator_id=None), None)


# ---- visibility ----

@pytest.mark.parametrize("visibility", list(ResultVisibility))
def test_creator_always_sees_results(visibility):
    ballot = make_ballot(result_visibility=visibility, results_visible_to_public=False)
    assert lifecycle.can_see_results(ballot, "alice", BallotStatus.ACTIVE).show


@pytest.mark.parametrize("status", list(BallotStatus))
def test_never_hides_from_everyone_else(status):
    ballot = make_ballot(result_visibility=ResultVisibility.NEVER)
    for viewer in ("bob", None):
        decision = lifecycle.can_see_results(ballot, viewer, status)
        assert not decision.show
        assert decision.reason == HIDDEN_NEVER


def test_manual_hides_from_public():
    ballot = make_ballot(result_visibility=ResultVisibility.MANUAL)
    decision = lifecycle.can_see_results(ballot, "bob", BallotStatus.CLOSED)
    assert not decision.show
    assert decision.reason == HIDDEN_NOT_CURRENTLY


def test_after_voting_follows_effective_status():
    ballot = make_ballot(result_visibility=ResultVisibility.AFTER_VOTING)
    hidden = lifecycle.can_see_results(ballot, "bob", BallotStatus.ACTIVE)
    assert not hidden.show
    assert hidden.reason == HIDDEN_AFTER_VOTING
    assert lifecycle.can_see_results(ballot, "bob", BallotStatus.CLOSED).show


def test_live_uses_public_flag():
    public = make_ballot(result_visibility=ResultVisibility.LIVE, results_visible_to_public=True)
    private = make_ballot(result_visibility=ResultVisibility.LIVE, results_visible_to_public=False)
    assert lifecycle.can_see_results(public, None, BallotStatus.ACTIVE).show
    decision = lifecycle.can_see_results(private, None, BallotStatus.ACTIVE)
    assert not decision.show
    assert decision.reason == HIDDEN_NOT_CURRENTLY
