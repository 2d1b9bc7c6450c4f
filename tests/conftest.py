from collections import deque

import pytest

from services.identifiers import reset_generator

FROZEN_NOW = 1700000000000


class FakeClock:
    """Millisecond clock that only moves when told to.

    Scheduled readings are returned first, one per call; after that the clock
    keeps returning the last value.
    """

    def __init__(self, now: int = FROZEN_NOW):
        self.now = now
        self.reads = 0
        self._scheduled = deque()

    def schedule(self, *readings: int) -> None:
        self._scheduled.extend(readings)

    def __call__(self) -> int:
        self.reads += 1
        if self._scheduled:
            self.now = self._scheduled.popleft()
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def shared_generator():
    reset_generator()
    yield
    reset_generator()
