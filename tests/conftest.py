"""
Shared fixtures for plate finder tests
"""

import pytest

from plate_finder.engine.interfaces import AlertSink, CaptureRequester
from plate_finder.engine.plate_engine import PlateEngine
from plate_finder.storage.plate_store import MemoryPlateStore
from plate_finder.utils.config import EngineSettings


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingCaptureRequester(CaptureRequester):
    def __init__(self):
        self.requests = []

    def request_capture(self, request):
        self.requests.append(request)

    @property
    def last(self):
        return self.requests[-1] if self.requests else None


class RecordingAlertSink(AlertSink):
    def __init__(self):
        self.events = []

    def on_alert(self, event):
        self.events.append(event)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def requester():
    return RecordingCaptureRequester()


@pytest.fixture
def alerts():
    return RecordingAlertSink()


@pytest.fixture
def plate_store():
    return MemoryPlateStore()


@pytest.fixture
def make_engine(clock, requester, alerts, plate_store):
    """Build an engine wired to recording collaborators"""
    def _make(**settings):
        return PlateEngine(
            EngineSettings(**settings),
            capture_requester=requester,
            alert_sink=alerts,
            plate_sink=plate_store,
            clock=clock,
        )
    return _make


@pytest.fixture
def engine(make_engine):
    return make_engine()
