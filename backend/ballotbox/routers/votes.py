from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ballotbox.dependencies import get_service
from ballotbox.errors import InvalidInput
from ballotbox.models import VoteRequest, VoteResponse, VoteStatus
from ballotbox.security import get_current_actor
from ballotbox.security.limiter import limiter, vote_rate_limit
from ballotbox.service import BallotService

router = APIRouter(prefix="/ballots", tags=["votes"])


def _voter_id(actor: Optional[str], supplied: Optional[str]) -> str:
    # Authenticated callers always vote as themselves.
    voter_id = actor or supplied
    if not voter_id:
        raise InvalidInput("voter_id is required for anonymous votes")
    return voter_id


@router.post("/{ballot_id}/votes", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(vote_rate_limit)
def submit_vote(
    request: Request,
    ballot_id: str,
    payload: VoteRequest,
    actor: Optional[str] = Depends(get_current_actor),
    service: BallotService = Depends(get_service),
):
    record = service.submit_vote(
        ballot_id,
        _voter_id(actor, payload.voter_id),
        [r.to_record() for r in payload.rankings],
        actor=actor,
    )
    return VoteResponse(ballot_id=record.ballot_id, voter_id=record.voter_id, submitted_at=record.submitted_at)


@router.get("/{ballot_id}/votes/status", response_model=VoteStatus)
def vote_status(
    ballot_id: str,
    voter_id: Optional[str] = Query(default=None, max_length=128),
    actor: Optional[str] = Depends(get_current_actor),
    service: BallotService = Depends(get_service),
):
    return VoteStatus(has_voted=service.has_voted(ballot_id, _voter_id(actor, voter_id)))
