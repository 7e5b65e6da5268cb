from typing import Optional

from fastapi import APIRouter, Depends

from ballotbox.dependencies import get_service
from ballotbox.models import UserBallots
from ballotbox.security import get_current_actor
from ballotbox.service import BallotService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/ballots", response_model=UserBallots)
def my_ballots(
    actor: Optional[str] = Depends(get_current_actor),
    service: BallotService = Depends(get_service),
):
    ballots = service.get_user_ballots(actor)
    return UserBallots(
        created=[b.to_dict() for b in ballots.created],
        voted=[b.to_dict() for b in ballots.voted],
    )
