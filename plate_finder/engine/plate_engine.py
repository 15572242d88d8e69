"""
Plate engine: owns the tracked-plate set and sequences each update cycle

detections -> RegionMatcher -> capture request for a number-less plate ->
OCR readings -> TextVoteAggregator -> number on the plate -> TargetAlert
"""

import itertools
import threading
import time
from typing import Callable, List, Optional, Sequence

from .interfaces import (
    AlertSink,
    CaptureRequest,
    CaptureRequester,
    LoggingAlertSink,
    NullCaptureRequester,
    PlateSink,
)
from ..alerting.target_alert import AlertEvent, AlertState, TargetAlert
from ..tracking.region_matcher import RegionMatcher
from ..tracking.tracked_plate import TrackedPlate
from ..utils.config import Config, EngineSettings, target_from_config
from ..utils.logger import setup_logger
from ..validation.vote_aggregator import TextVoteAggregator


class PlateEngine:
    """
    Serialized entry point for detector, OCR and caller threads.

    Every mutating call holds one re-entrant lock. Collaborators (capture
    requester, alert sink, plate sink) are invoked after the lock is
    released, so they may call back into the engine.
    """

    def __init__(self,
                 settings: Optional[EngineSettings] = None,
                 capture_requester: Optional[CaptureRequester] = None,
                 alert_sink: Optional[AlertSink] = None,
                 plate_sink: Optional[PlateSink] = None,
                 clock: Callable[[], float] = time.time):
        self.settings = settings or EngineSettings()
        self.capture_requester = capture_requester or NullCaptureRequester()
        self.alert_sink = alert_sink or LoggingAlertSink()
        self.plate_sink = plate_sink
        self.clock = clock

        self.logger = setup_logger(self.__class__.__name__)

        self.matcher = RegionMatcher(
            iou_threshold=self.settings.iou_threshold,
            stale_after=self.settings.stale_after,
            clock=clock,
        )
        self.aggregator = TextVoteAggregator(
            min_confidence=self.settings.min_confidence,
            window_capacity=self.settings.window_capacity,
            live_policy=self.settings.live_policy,
            capture_policy=self.settings.capture_policy,
            capture_min_confidence=self.settings.capture_min_confidence,
        )
        self.alert = TargetAlert(clock=clock)

        self._lock = threading.RLock()
        self._request_ids = itertools.count(1)
        self.generation = 0
        self.pending_capture: Optional[CaptureRequest] = None

        # Statistics
        self.total_cycles = 0
        self.captures_requested = 0
        self.captures_dropped_busy = 0
        self.captures_dropped_expired = 0
        self.late_results_discarded = 0
        self.numbers_validated = 0
        self.alerts_fired = 0

        self.logger.info(f"PlateEngine initialized: {self.settings.to_dict()}")

    @classmethod
    def from_config(cls, config: Config, **collaborators) -> "PlateEngine":
        engine = cls(EngineSettings.from_config(config), **collaborators)
        target = target_from_config(config)
        if target:
            engine.set_target(target)
        return engine

    @property
    def capture_busy(self) -> bool:
        return self.pending_capture is not None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def on_detections(self, rects: Sequence, now: Optional[float] = None) -> List[TrackedPlate]:
        """
        Process one detection batch

        Args:
            rects: Rect objects or (x, y, width, height) sequences
            now: Frame timestamp, defaults to the engine clock

        Returns:
            Snapshot of the live tracked plates
        """
        with self._lock:
            if now is None:
                now = self.clock()
            self.total_cycles += 1

            self.matcher.update(rects, now)
            self._drop_expired_capture()
            event = self._observe()
            request = self._next_capture_request(now)
            plates = self._snapshot()

        self._dispatch(event=event, request=request)
        return plates

    def on_candidate_readings(self, track_id: Optional[str], readings: Sequence) -> Optional[str]:
        """
        Route OCR readings to the aggregator

        Args:
            track_id: Track of a high-resolution capture, or None for
                live-stream readings (applied to the first plate without
                a number)
            readings: CandidateReading objects or (text, confidence) pairs

        Returns:
            The number written onto a plate, if any
        """
        with self._lock:
            if track_id is None:
                numbers = self._apply_live_readings(readings)
            else:
                if self.pending_capture is not None and self.pending_capture.track_id == track_id:
                    self.pending_capture = None
                numbers = self._apply_capture_readings(track_id, readings)
            event = self._observe()

        self._dispatch(event=event, numbers=numbers)
        return numbers[0] if numbers else None

    def on_capture_result(self, request: CaptureRequest, readings: Sequence) -> Optional[str]:
        """Deliver the result of a capture started by this engine"""
        with self._lock:
            if request.generation != self.generation:
                self.late_results_discarded += 1
                self.logger.debug(
                    f"Discarded capture {request.request_id} from generation {request.generation}"
                )
                return None

            if self.pending_capture is None or self.pending_capture.request_id != request.request_id:
                self.late_results_discarded += 1
                self.logger.debug(f"Discarded capture {request.request_id}: not outstanding")
                return None

            self.pending_capture = None
            numbers = self._apply_capture_readings(request.track_id, readings)
            event = self._observe()

        self._dispatch(event=event, numbers=numbers)
        return numbers[0] if numbers else None

    def set_target(self, target: Optional[str]):
        with self._lock:
            self.alert.set_target(target)
            # Plates validated before the search started count too
            event = self._observe()

        self._dispatch(event=event)

    def clear_target(self):
        with self._lock:
            self.alert.clear()

    @property
    def alert_state(self) -> AlertState:
        return self.alert.state

    def current_plates(self) -> List[TrackedPlate]:
        with self._lock:
            return self._snapshot()

    def clear_capture_busy(self):
        """Force-clear a stuck capture; its result will be discarded"""
        with self._lock:
            if self.pending_capture is not None:
                self.logger.warning(
                    f"Force-clearing capture {self.pending_capture.request_id} "
                    f"for track {self.pending_capture.track_id}"
                )
                self.pending_capture = None

    def end_session(self):
        """Tear down tracks, votes and search state; in-flight results are discarded"""
        with self._lock:
            self.generation += 1
            self.pending_capture = None
            self.matcher.reset()
            self.aggregator.clear()
            self.alert.clear()
            self.logger.info(f"Session ended, generation now {self.generation}")

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------

    def _observe(self) -> Optional[AlertEvent]:
        event = self.alert.observe(self.matcher.tracks)
        if event is not None:
            self.alerts_fired += 1
        return event

    def _drop_expired_capture(self):
        pending = self.pending_capture
        if pending is None or self.matcher.get(pending.track_id) is not None:
            return
        # Its result, if it still arrives, is discarded as not outstanding
        self.pending_capture = None
        self.captures_dropped_expired += 1
        self.logger.info(
            f"Dropped capture {pending.request_id}: track {pending.track_id} expired"
        )

    def _snapshot(self) -> List[TrackedPlate]:
        return [track.snapshot() for track in self.matcher.tracks]

    def _next_capture_request(self, now: float) -> Optional[CaptureRequest]:
        candidates = self.matcher.tracks_without_numbers()
        if not candidates:
            return None

        if self.pending_capture is not None:
            self.captures_dropped_busy += 1
            return None

        track = candidates[0]
        self.pending_capture = CaptureRequest(
            request_id=next(self._request_ids),
            track_id=track.id,
            rect=track.last_rect,
            generation=self.generation,
            requested_at=now,
        )
        self.captures_requested += 1
        self.logger.info(
            f"Requesting capture {self.pending_capture.request_id} for track {track.id}"
        )
        return self.pending_capture

    def _apply_live_readings(self, readings: Sequence) -> List[str]:
        result = self.aggregator.submit_with_confidence(readings)
        if result is None:
            return []

        number, confidence = result
        candidates = self.matcher.tracks_without_numbers()
        if not candidates:
            self.logger.debug(f"Validated '{number}' but no plate is waiting for a number")
            return []

        return self._assign(candidates[0], number, confidence)

    def _apply_capture_readings(self, track_id: str, readings: Sequence) -> List[str]:
        track = self.matcher.get(track_id)
        if track is None:
            self.late_results_discarded += 1
            self.logger.debug(f"Discarded readings for expired track {track_id}")
            return []

        result = self.aggregator.resolve_capture_with_confidence(readings)
        if result is None:
            return []

        number, confidence = result
        return self._assign(track, number, confidence)

    def _assign(self, track: TrackedPlate, number: str, confidence: float) -> List[str]:
        if not track.assign_number(number, confidence, self.settings.allow_overwrite):
            return []

        self.numbers_validated += 1
        self.logger.info(f"Track {track.id} validated as '{number}' (conf: {confidence:.2f})")
        return [number]

    def _dispatch(self,
                  event: Optional[AlertEvent] = None,
                  request: Optional[CaptureRequest] = None,
                  numbers: Sequence[str] = ()):
        """
        Deliver to collaborators, alert first

        Every delivery is attempted even if an earlier one raises. The first
        error is re-raised once all of them have run.
        """
        deliveries = []
        if event is not None:
            deliveries.append((self.alert_sink.on_alert, event))
        if request is not None:
            deliveries.append((self.capture_requester.request_capture, request))
        if self.plate_sink is not None:
            deliveries.extend((self.plate_sink.record, number) for number in numbers)

        errors = []
        for deliver, payload in deliveries:
            try:
                deliver(payload)
            except Exception as e:
                self.logger.error(f"{deliver.__qualname__} failed: {e}")
                errors.append(e)

        if errors:
            raise errors[0]

    def get_statistics(self) -> dict:
        with self._lock:
            return {
                'total_cycles': self.total_cycles,
                'generation': self.generation,
                'capture_busy': self.capture_busy,
                'captures_requested': self.captures_requested,
                'captures_dropped_busy': self.captures_dropped_busy,
                'captures_dropped_expired': self.captures_dropped_expired,
                'late_results_discarded': self.late_results_discarded,
                'numbers_validated': self.numbers_validated,
                'alerts_fired': self.alerts_fired,
                'alert_state': self.alert.state.value,
                'target': self.alert.target,
                'matcher': self.matcher.get_statistics(),
                'aggregator': self.aggregator.get_statistics(),
            }
