from typing import Optional

from fastapi import APIRouter, Depends, status
from starlette.responses import Response

from ballotbox.dependencies import get_service
from ballotbox.models import (
    Ballot,
    BallotCreate,
    BallotCreated,
    BallotResults,
    BallotUpdate,
    ClaimRequest,
    VisibilityUpdate,
)
from ballotbox.security import get_current_actor, require_actor
from ballotbox.service import BallotService

router = APIRouter(prefix="/ballots", tags=["ballots"])


@router.post("", response_model=BallotCreated, status_code=status.HTTP_201_CREATED)
def create_ballot(
    payload: BallotCreate,
    actor: Optional[str] = Depends(get_current_actor),
    service: BallotService = Depends(get_service),
):
    ballot = service.create_ballot(actor, payload.to_draft(), activate=payload.activate)
    return BallotCreated(ballot_id=ballot.id, url_token=ballot.url_token)


@router.get("/by-url/{url_token}", response_model=Ballot)
def get_ballot_by_url(url_token: str, service: BallotService = Depends(get_service)):
    return service.get_ballot_by_url(url_token).to_dict()


@router.get("/{ballot_id}", response_model=Ballot)
def get_ballot(ballot_id: str, service: BallotService = Depends(get_service)):
    return service.get_ballot(ballot_id).to_dict()


@router.patch("/{ballot_id}", response_model=Ballot)
def update_ballot(
    ballot_id: str,
    payload: BallotUpdate,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
):
    service.update_ballot(ballot_id, actor, **payload.model_dump(exclude_unset=True))
    return service.get_ballot(ballot_id).to_dict()


@router.delete("/{ballot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ballot(
    ballot_id: str,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
) -> Response:
    service.delete_ballot(ballot_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{ballot_id}/activate", response_model=Ballot)
def activate_ballot(
    ballot_id: str,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
):
    service.activate_ballot(ballot_id, actor)
    return service.get_ballot(ballot_id).to_dict()


@router.post("/{ballot_id}/close", response_model=Ballot)
def close_ballot(
    ballot_id: str,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
):
    service.close_ballot(ballot_id, actor)
    return service.get_ballot(ballot_id).to_dict()


@router.post("/{ballot_id}/claim", response_model=Ballot)
def claim_ballot(
    ballot_id: str,
    payload: Optional[ClaimRequest] = None,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
):
    anonymous_voter_id = payload.anonymous_voter_id if payload else None
    service.claim_ballot(ballot_id, actor, anonymous_voter_id=anonymous_voter_id)
    return service.get_ballot(ballot_id).to_dict()


@router.patch("/{ballot_id}/visibility", response_model=Ballot)
def update_result_visibility(
    ballot_id: str,
    payload: VisibilityUpdate,
    actor: str = Depends(require_actor),
    service: BallotService = Depends(get_service),
):
    service.update_result_visibility(ballot_id, actor, **payload.model_dump(exclude_none=True))
    return service.get_ballot(ballot_id).to_dict()


@router.get("/{ballot_id}/results", response_model=BallotResults)
def get_results(
    ballot_id: str,
    viewer: Optional[str] = Depends(get_current_actor),
    service: BallotService = Depends(get_service),
):
    return service.get_results(ballot_id, viewer).to_dict()
