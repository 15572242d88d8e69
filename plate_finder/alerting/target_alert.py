"""
Target search: debounced one-shot alert when a validated plate matches
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from ..tracking.tracked_plate import TrackedPlate
from ..utils.logger import setup_logger
from ..validation.plate_shape import normalize_text


class AlertState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    TRIGGERED = "triggered"


@dataclass(frozen=True)
class AlertEvent:
    """Fired once per target search session"""
    target: str
    plate_number: str
    track_id: str
    triggered_at: float

    @property
    def message(self) -> str:
        return f"Target vehicle found: {self.plate_number}"


class TargetAlert:
    """
    Watches validated plate numbers for a target substring.

    The first plate whose number contains the target moves the machine from
    SEARCHING to TRIGGERED and produces one AlertEvent. TRIGGERED is terminal
    until a new target is set; matches after that are ignored.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.logger = setup_logger(self.__class__.__name__)

        self.target: Optional[str] = None
        self.triggered = False
        self.last_event: Optional[AlertEvent] = None

    @property
    def state(self) -> AlertState:
        if self.target is None:
            return AlertState.IDLE
        if self.triggered:
            return AlertState.TRIGGERED
        return AlertState.SEARCHING

    def set_target(self, target: Optional[str]):
        """Start a new search session; an empty target clears it"""
        normalized = normalize_text(target)
        if not normalized:
            self.clear()
            return

        self.target = normalized
        self.triggered = False
        self.last_event = None
        self.logger.info(f"Starting to search for license plate: {normalized}")

    def clear(self):
        if self.target is not None:
            self.logger.info(f"Stopped searching for license plate: {self.target}")
        self.target = None
        self.triggered = False
        self.last_event = None

    def observe(self, plates: Iterable[TrackedPlate]) -> Optional[AlertEvent]:
        """Check plates against the target; returns an event at most once per session"""
        if self.state is not AlertState.SEARCHING:
            return None

        for plate in plates:
            if plate.number and self.target in plate.number:
                self.triggered = True
                self.last_event = AlertEvent(
                    target=self.target,
                    plate_number=plate.number,
                    track_id=plate.id,
                    triggered_at=self.clock(),
                )
                self.logger.info(self.last_event.message)
                return self.last_event

        return None
