import io
import json

import pytest

from faultline import logger


class LogCapture:
    """In-memory sink for the structured logger."""

    def __init__(self):
        self.stream = io.StringIO()

    @property
    def records(self) -> list[dict]:
        return [
            json.loads(line)
            for line in self.stream.getvalue().splitlines()
            if line.strip()
        ]

    def by_msg(self, msg: str) -> list[dict]:
        return [r for r in self.records if r["msg"] == msg]

    def at_level(self, level: str) -> list[dict]:
        return [r for r in self.records if r["level"] == level]


@pytest.fixture
def log_capture():
    capture = LogCapture()
    logger.configure(level="debug", stream=capture.stream)
    yield capture
    logger.configure()


class RecordingSignal:
    """Cancellation signal that records requested waits instead of sleeping.

    ``fire_on_wait=n`` makes the n-th wait report that the signal fired.
    """

    def __init__(self, fire_on_wait: int | None = None):
        self.waits: list[float] = []
        self.fire_on_wait = fire_on_wait

    def wait(self, timeout=None) -> bool:
        self.waits.append(timeout)
        return self.fire_on_wait is not None and len(self.waits) >= self.fire_on_wait


@pytest.fixture
def signal():
    return RecordingSignal()
