import pytest

from assessment.catalog import Catalog, SectionDescriptor, default_catalog
from assessment.service import SessionService
from assessment.storage import ResponseStore
from assessment.store import SessionStore

T0 = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def small_catalog():
    """Two short sections and a 60 second total budget."""
    return Catalog(
        [
            SectionDescriptor(key="A", name="Warm-up", questions=2, per_question_seconds=5),
            SectionDescriptor(key="B", name="Main", questions=1, total_seconds=20),
        ],
        total_seconds=60,
    )


@pytest.fixture
def service(catalog, clock):
    return SessionService(SessionStore(), catalog, clock=clock)


@pytest.fixture
def response_store(tmp_path, clock):
    return ResponseStore(tmp_path / "data", tmp_path / "uploads", clock=clock)
