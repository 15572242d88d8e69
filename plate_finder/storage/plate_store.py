"""
Append-only stores for validated plate numbers
"""

from pathlib import Path
from threading import Lock
from typing import List

import yaml

from ..engine.interfaces import PlateSink
from ..utils.logger import setup_logger


class MemoryPlateStore(PlateSink):
    """Keeps seen numbers in memory, in first-seen order"""

    def __init__(self):
        self._numbers: List[str] = []
        self._seen = set()
        self.lock = Lock()

    def record(self, number: str) -> None:
        with self.lock:
            self._add(number)

    def _add(self, number: str) -> bool:
        if not number or number in self._seen:
            return False
        self._seen.add(number)
        self._numbers.append(number)
        return True

    def numbers(self) -> List[str]:
        with self.lock:
            return list(self._numbers)

    def __contains__(self, number: str) -> bool:
        with self.lock:
            return number in self._seen

    def __len__(self) -> int:
        return len(self._numbers)


class YamlPlateStore(MemoryPlateStore):
    """Persists seen numbers as a YAML list under ``saved_plates``"""

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)
        self.logger = setup_logger(self.__class__.__name__)

        if self.path.exists():
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict) or not isinstance(data.get('saved_plates') or [], list):
                raise ValueError(f"Plates file {self.path} must map 'saved_plates' to a list")
            for number in data.get('saved_plates') or []:
                self._add(str(number))
            self.logger.info(f"Loaded {len(self._numbers)} saved plate(s) from {self.path}")

    def record(self, number: str) -> None:
        with self.lock:
            if not self._add(number):
                return
            self._write()
        self.logger.info(f"Saved plate {number}")

    def _write(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w') as f:
            yaml.safe_dump({'saved_plates': self._numbers}, f, default_flow_style=False)
        tmp_path.replace(self.path)
