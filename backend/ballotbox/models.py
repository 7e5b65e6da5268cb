from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from ballotbox.records import BallotDraft, DurationMode, Ranking, ResultVisibility


class RankingIn(BaseModel):
    choice_index: int = Field(ge=0)
    rank: int = Field(ge=1)

    def to_record(self) -> Ranking:
        return Ranking(choice_index=self.choice_index, rank=self.rank)


class BallotCreate(BaseModel):
    title: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    choices: List[str]
    duration_mode: DurationMode = DurationMode.MANUAL
    time_limit: Optional[float] = None
    vote_limit: Optional[int] = None
    result_visibility: ResultVisibility = ResultVisibility.LIVE
    show_partial_results: bool = True
    results_visible_to_public: bool = True
    activate: bool = False

    @field_validator("choices")
    @classmethod
    def _choice_labels(cls, v: List[str]) -> List[str]:
        if any(len(c) > 200 for c in v):
            raise ValueError("choice labels must be at most 200 characters")
        return v

    def to_draft(self) -> BallotDraft:
        return BallotDraft(
            title=self.title,
            description=self.description,
            choices=list(self.choices),
            duration_mode=self.duration_mode,
            time_limit=self.time_limit,
            vote_limit=self.vote_limit,
            result_visibility=self.result_visibility,
            show_partial_results=self.show_partial_results,
            results_visible_to_public=self.results_visible_to_public,
        )


class BallotCreated(BaseModel):
    ballot_id: str
    url_token: str


class BallotUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    choices: Optional[List[str]] = None
    duration_mode: Optional[DurationMode] = None
    time_limit: Optional[float] = None
    vote_limit: Optional[int] = None


class VisibilityUpdate(BaseModel):
    result_visibility: Optional[ResultVisibility] = None
    show_partial_results: Optional[bool] = None
    results_visible_to_public: Optional[bool] = None


class ClaimRequest(BaseModel):
    anonymous_voter_id: Optional[str] = Field(default=None, max_length=128)


class Ballot(BaseModel):
    id: str
    url_token: str
    title: str
    description: Optional[str] = None
    choices: List[str]
    creator_id: Optional[str] = None
    created_at: float
    duration_mode: DurationMode
    time_limit: Optional[float] = None
    vote_limit: Optional[int] = None
    status: str
    closed_at: Optional[float] = None
    result_visibility: ResultVisibility
    show_partial_results: bool
    results_visible_to_public: bool
    is_active: Optional[bool] = None
    vote_count: Optional[int] = None


class UserBallots(BaseModel):
    created: List[Ballot]
    voted: List[Ballot]


class VoteRequest(BaseModel):
    rankings: List[RankingIn] = Field(min_length=1)
    # Anonymous per-browser token; ignored when the caller is authenticated.
    voter_id: Optional[str] = Field(default=None, min_length=1, max_length=128)


class VoteResponse(BaseModel):
    ballot_id: str
    voter_id: str
    submitted_at: float


class VoteStatus(BaseModel):
    has_voted: bool


class ChoiceTally(BaseModel):
    choice_index: int
    choice: str
    votes: int
    percentage: float


class Round(BaseModel):
    round: int
    results: List[ChoiceTally]
    eliminated: Optional[str] = None
    exhausted: int = 0


class Tabulation(BaseModel):
    rounds: List[Round]
    winner: Optional[str] = None


class BallotResults(BaseModel):
    ballot: Ballot
    total_votes: int
    results: Tabulation
    results_hidden: bool
    hidden_reason: Optional[str] = None
