"""
Interfaces to the engine's external collaborators
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..alerting.target_alert import AlertEvent
from ..tracking.tracked_plate import Rect
from ..utils.logger import setup_logger


@dataclass(frozen=True)
class CaptureRequest:
    """A high-resolution capture + OCR pass focused on one track"""
    request_id: int
    track_id: str
    rect: Rect
    generation: int
    requested_at: float


class CaptureRequester(ABC):
    """Produces high-resolution captures and delivers OCR results back"""

    @abstractmethod
    def request_capture(self, request: CaptureRequest) -> None:
        """
        Start a capture for the request's region

        The result must be handed back exactly once through
        PlateEngine.on_capture_result(request, readings). Must not block.
        """
        pass


class AlertSink(ABC):
    """Announces a found target (speech, sound, vibration, ...)"""

    @abstractmethod
    def on_alert(self, event: AlertEvent) -> None:
        pass


class PlateSink(ABC):
    """Stores numbers of validated plates"""

    @abstractmethod
    def record(self, number: str) -> None:
        pass


class NullCaptureRequester(CaptureRequester):
    """Drops capture requests; used when no capture device is attached"""

    def request_capture(self, request: CaptureRequest) -> None:
        pass


class LoggingAlertSink(AlertSink):
    """Writes alert events to the log"""

    def __init__(self):
        self.logger = setup_logger(self.__class__.__name__)

    def on_alert(self, event: AlertEvent) -> None:
        self.logger.warning(f"{event.message} (target: {event.target}, track: {event.track_id})")
