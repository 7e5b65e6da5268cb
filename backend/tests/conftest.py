import itertools
import os
import tempfile

# Keep test runs from writing ballots.log into the working tree.
os.environ.setdefault("BALLOTBOX_LOG_FILE", os.path.join(tempfile.gettempdir(), "ballotbox-tests.log"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ballotbox.dependencies import get_service  # noqa: E402
from ballotbox.ids import UrlTokenGenerator  # noqa: E402
from ballotbox.main import app  # noqa: E402
from ballotbox.records import BallotDraft, Ranking  # noqa: E402
from ballotbox.security import create_access_token  # noqa: E402
from ballotbox.security.limiter import limiter  # noqa: E402
from ballotbox.service import BallotService  # noqa: E402
from ballotbox.storage import InMemoryBallotStore  # noqa: E402

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def counting_randbytes():
    """Deterministic random source: 0x00.., 0x01.., 0x02.. for each call."""
    counter = itertools.count()

    def _randbytes(n: int) -> bytes:
        return bytes([next(counter) % 256]) * n

    return _randbytes


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryBallotStore()


@pytest.fixture
def service(store, clock):
    return BallotService(store, clock=clock, token_generator=UrlTokenGenerator(16, counting_randbytes()))


@pytest.fixture
def make_draft():
    def _make(**overrides) -> BallotDraft:
        fields = {"title": "Lunch", "choices": ["Pizza", "Tacos", "Sushi"]}
        fields.update(overrides)
        return BallotDraft(**fields)

    return _make


@pytest.fixture
def active_ballot(service, make_draft):
    """Factory for an active ballot owned by ``alice``."""

    def _make(**overrides):
        return service.create_ballot("alice", make_draft(**overrides), activate=True)

    return _make


@pytest.fixture
def rank():
    """rank(2, 0) -> choice 2 ranked first, choice 0 second."""

    def _rank(*choice_indices):
        return [Ranking(choice_index=c, rank=i + 1) for i, c in enumerate(choice_indices)]

    return _rank


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def auth():
    def _headers(actor: str):
        return {"Authorization": f"Bearer {create_access_token(actor)}"}

    return _headers
