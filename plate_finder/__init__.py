"""
Plate finder: tracks license plates across frames, validates OCR readings
by vote and raises a one-shot alert when a target plate shows up
"""

from .alerting.target_alert import AlertEvent, AlertState, TargetAlert
from .engine.interfaces import AlertSink, CaptureRequest, CaptureRequester, PlateSink
from .engine.plate_engine import PlateEngine
from .tracking.region_matcher import RegionMatcher
from .tracking.tracked_plate import Rect, TrackedPlate
from .utils.config import Config, EngineSettings
from .validation.vote_aggregator import CandidateReading, TextVoteAggregator

__version__ = "1.0.0"
