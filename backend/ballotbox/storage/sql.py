from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from ballotbox.db_models import ActivityRow, BallotRow, VoteRow
from ballotbox.errors import BallotNotActive, DuplicateUrlToken, DuplicateVote, NotFound
from ballotbox.records import (
    Activity,
    ActivityType,
    Ballot,
    BallotStatus,
    DurationMode,
    Ranking,
    ResultVisibility,
    VoteRecord,
)
from ballotbox.storage.base import BallotStore

_ENUM_FIELDS = {
    "status": BallotStatus,
    "duration_mode": DurationMode,
    "result_visibility": ResultVisibility,
}


def _to_ballot(row: BallotRow) -> Ballot:
    return Ballot(
        id=row.id,
        url_token=row.url_token,
        title=row.title,
        description=row.description,
        choices=list(row.choices),
        creator_id=row.creator_id,
        created_at=row.created_at,
        duration_mode=DurationMode(row.duration_mode),
        time_limit=row.time_limit,
        vote_limit=row.vote_limit,
        status=BallotStatus(row.status),
        closed_at=row.closed_at,
        result_visibility=ResultVisibility(row.result_visibility),
        show_partial_results=row.show_partial_results,
        results_visible_to_public=row.results_visible_to_public,
    )


def _column_value(name: str, value: Any) -> Any:
    if name in _ENUM_FIELDS and value is not None:
        return _ENUM_FIELDS[name](value).value
    if name == "choices" and value is not None:
        return list(value)
    return value


def _to_vote(row: VoteRow) -> VoteRecord:
    return VoteRecord(
        ballot_id=row.ballot_id,
        voter_id=row.voter_id,
        rankings=[Ranking(choice_index=r["choice_index"], rank=r["rank"]) for r in row.rankings],
        submitted_at=row.submitted_at,
    )


class SqlBallotStore(BallotStore):
    """SQLAlchemy-backed store.

    One vote per ``(ballot_id, voter_id)`` is guaranteed by the
    ``uq_votes_ballot_voter`` unique constraint; a losing concurrent insert
    surfaces as ``DuplicateVote``.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get_ballot(self, ballot_id: str) -> Optional[Ballot]:
        with self._session() as session:
            row = session.get(BallotRow, ballot_id)
            return _to_ballot(row) if row else None

    def get_ballot_by_url(self, url_token: str) -> Optional[Ballot]:
        with self._session() as session:
            row = session.execute(
                select(BallotRow).where(BallotRow.url_token == url_token)
            ).scalars().first()
            return _to_ballot(row) if row else None

    def insert_ballot(self, ballot: Ballot) -> Ballot:
        values = {name: _column_value(name, value) for name, value in ballot.to_dict().items()}
        values.pop("id")
        with self._session() as session:
            try:
                with session.begin():
                    row = BallotRow(**values)
                    session.add(row)
            except IntegrityError as exc:
                raise DuplicateUrlToken("url token already in use") from exc
            return _to_ballot(row)

    def patch_ballot(self, ballot_id: str, **fields: Any) -> Ballot:
        with self._session() as session, session.begin():
            row = session.get(BallotRow, ballot_id)
            if row is None:
                raise NotFound("Ballot not found")
            for name, value in fields.items():
                setattr(row, name, _column_value(name, value))
            session.flush()
            return _to_ballot(row)

    def delete_ballot(self, ballot_id: str) -> None:
        with self._session() as session, session.begin():
            session.execute(delete(VoteRow).where(VoteRow.ballot_id == ballot_id))
            session.execute(delete(ActivityRow).where(ActivityRow.ballot_id == ballot_id))
            session.execute(delete(BallotRow).where(BallotRow.id == ballot_id))

    def insert_vote(self, record: VoteRecord, max_votes: Optional[int] = None) -> VoteRecord:
        row = VoteRow(
            ballot_id=record.ballot_id,
            voter_id=record.voter_id,
            rankings=[r.to_dict() for r in record.rankings],
            submitted_at=record.submitted_at,
        )
        with self._session() as session:
            try:
                with session.begin():
                    if max_votes is not None:
                        # Lock the ballot row so concurrent capped inserts count one at a time.
                        session.execute(
                            select(BallotRow.id).where(BallotRow.id == record.ballot_id).with_for_update()
                        )
                        count = session.scalar(
                            select(func.count()).select_from(VoteRow).where(VoteRow.ballot_id == record.ballot_id)
                        )
                        if count >= max_votes:
                            raise BallotNotActive("Ballot is not active")
                    session.add(row)
            except IntegrityError as exc:
                raise DuplicateVote("You have already voted on this ballot") from exc
            return _to_vote(row)

    def query_by_ballot(self, ballot_id: str) -> List[VoteRecord]:
        with self._session() as session:
            rows = session.execute(
                select(VoteRow).where(VoteRow.ballot_id == ballot_id).order_by(VoteRow.id)
            ).scalars().all()
            return [_to_vote(row) for row in rows]

    def query_by_voter(self, ballot_id: str, voter_id: str) -> Optional[VoteRecord]:
        with self._session() as session:
            row = session.execute(
                select(VoteRow).where(VoteRow.ballot_id == ballot_id, VoteRow.voter_id == voter_id)
            ).scalars().first()
            return _to_vote(row) if row else None

    def count_votes(self, ballot_id: str) -> int:
        with self._session() as session:
            return int(
                session.scalar(select(func.count()).select_from(VoteRow).where(VoteRow.ballot_id == ballot_id))
                or 0
            )

    def reassign_vote(self, ballot_id: str, from_voter: str, to_voter: str) -> Optional[VoteRecord]:
        with self._session() as session:
            try:
                with session.begin():
                    rows = session.execute(
                        select(VoteRow).where(
                            VoteRow.ballot_id == ballot_id,
                            VoteRow.voter_id.in_([from_voter, to_voter]),
                        )
                    ).scalars().all()
                    by_voter = {row.voter_id: row for row in rows}
                    if from_voter not in by_voter or to_voter in by_voter:
                        return None
                    moved = by_voter[from_voter]
                    moved.voter_id = to_voter
            except IntegrityError:
                return None
            return _to_vote(moved)

    def insert_activity(self, activity: Activity) -> None:
        with self._session() as session, session.begin():
            session.add(
                ActivityRow(
                    user_id=activity.user_id,
                    ballot_id=activity.ballot_id,
                    activity_type=activity.activity_type.value,
                    timestamp=activity.timestamp,
                )
            )

    def query_activity(self, user_id: str) -> List[Activity]:
        with self._session() as session:
            rows = session.execute(
                select(ActivityRow).where(ActivityRow.user_id == user_id).order_by(ActivityRow.id)
            ).scalars().all()
            return [
                Activity(
                    user_id=row.user_id,
                    ballot_id=row.ballot_id,
                    activity_type=ActivityType(row.activity_type),
                    timestamp=row.timestamp,
                )
                for row in rows
            ]


__all__ = ["SqlBallotStore"]
