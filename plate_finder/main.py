#!/usr/bin/env python3
"""
Plate finder replay tool
Drives the plate engine from a recorded YAML event script: detection
batches, live OCR readings and high-resolution capture results.
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .alerting.target_alert import AlertEvent
from .engine.interfaces import AlertSink, CaptureRequest, CaptureRequester, LoggingAlertSink
from .engine.plate_engine import PlateEngine
from .storage.plate_store import MemoryPlateStore, YamlPlateStore
from .utils.config import Config
from .utils.logger import configure_logging


class ReplayClock:
    """Clock whose time is set by the script's ``t`` values"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class ScriptedCaptureRequester(CaptureRequester):
    """Holds the outstanding request until a ``capture`` step answers it"""

    def __init__(self):
        self.pending: Optional[CaptureRequest] = None
        self.requests: List[CaptureRequest] = []

    def request_capture(self, request: CaptureRequest) -> None:
        self.pending = request
        self.requests.append(request)

    def take(self) -> Optional[CaptureRequest]:
        request, self.pending = self.pending, None
        return request


class CollectingAlertSink(AlertSink):
    """Keeps alert events and forwards them to the log"""

    def __init__(self):
        self.events: List[AlertEvent] = []
        self._log_sink = LoggingAlertSink()

    def on_alert(self, event: AlertEvent) -> None:
        self.events.append(event)
        self._log_sink.on_alert(event)


class ScriptReplay:
    """Replays an event script through a PlateEngine"""

    def __init__(self, config: Config, target: Optional[str] = None):
        self.config = config
        self.logger = configure_logging(config.logging, self.__class__.__name__)

        self.clock = ReplayClock()
        self.capture_requester = ScriptedCaptureRequester()
        self.alert_sink = CollectingAlertSink()

        store_path = config.storage.get('plates_file')
        self.plate_store = YamlPlateStore(store_path) if store_path else MemoryPlateStore()

        self.engine = PlateEngine.from_config(
            config,
            capture_requester=self.capture_requester,
            alert_sink=self.alert_sink,
            plate_sink=self.plate_store,
            clock=self.clock,
        )
        if target:
            self.engine.set_target(target)

        self.steps_run = 0
        self.start_time = time.time()

    @staticmethod
    def load_script(script_path: str) -> List[Dict[str, Any]]:
        path = Path(script_path)
        if not path.exists():
            raise FileNotFoundError(f"Script file not found: {path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        steps = data.get('steps', []) if isinstance(data, dict) else data
        if not isinstance(steps, list):
            raise ValueError(f"Script {path} must contain a list of steps")
        return steps

    def run_step(self, step: Dict[str, Any]):
        if 't' in step:
            self.clock.now = float(step['t'])

        if 'target' in step:
            self.engine.set_target(step['target'])

        if 'detections' in step:
            self.engine.on_detections(step['detections'] or [])

        if 'readings' in step:
            self.engine.on_candidate_readings(None, step['readings'] or [])

        if 'capture' in step:
            request = self.capture_requester.take()
            if request is None:
                self.logger.warning(f"Capture result at t={self.clock.now} but no capture was requested")
            else:
                self.engine.on_capture_result(request, step['capture'] or [])

        self.steps_run += 1

    def run(self, steps: List[Dict[str, Any]]) -> Dict[str, Any]:
        for step in steps:
            self.run_step(step)

        self.log_statistics()
        return {
            'plates': [plate.get_summary() for plate in self.engine.current_plates()],
            'alerts': [event.plate_number for event in self.alert_sink.events],
            'saved_plates': self.plate_store.numbers(),
        }

    def log_statistics(self):
        stats = self.engine.get_statistics()

        self.logger.info("=" * 60)
        self.logger.info("PLATE FINDER REPLAY STATISTICS")
        self.logger.info(f"Runtime: {time.time() - self.start_time:.2f}s")
        self.logger.info(f"Steps: {self.steps_run}")
        self.logger.info(f"Tracks created: {stats['matcher']['total_tracks_created']}")
        self.logger.info(f"Active tracks: {stats['matcher']['active_tracks']}")
        self.logger.info(f"Captures requested: {stats['captures_requested']}")
        self.logger.info(f"Numbers validated: {stats['numbers_validated']}")
        self.logger.info(f"Alerts fired: {stats['alerts_fired']}")
        self.logger.info(f"Alert state: {stats['alert_state']}")

        for plate in self.engine.current_plates():
            self.logger.info(f"  {plate.id[:8]}  {plate.number or 'Unknown'}")

        self.logger.info("=" * 60)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Replay recorded detections and OCR readings through the plate engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Replay a script with the default config
  plate-finder --script events.yaml

  # Search for a target plate
  plate-finder --script events.yaml --target XY123 --debug
        """
    )

    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "-s", "--script",
        required=True,
        help="YAML event script to replay"
    )
    parser.add_argument(
        "-t", "--target",
        help="Target plate substring to search for"
    )
    parser.add_argument(
        "--plates-file",
        help="Override the saved plates file from config"
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    try:
        config = Config(args.config)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}")
        return 1

    if args.debug:
        config.set('logging', 'level', 'DEBUG')

    if args.plates_file:
        config.set('storage', 'plates_file', args.plates_file)

    try:
        replay = ScriptReplay(config, target=args.target)
        steps = ScriptReplay.load_script(args.script)
        result = replay.run(steps)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    for number in result['alerts']:
        print(f"ALERT: target vehicle found: {number}")
    for plate in result['plates']:
        print(f"{plate['id'][:8]}  {plate['number'] or 'Unknown'}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
