"""
Plate text normalization and plate-shape gates

Two named policies are shipped. ``strict`` is used for live-stream readings,
which are plentiful but noisy. ``loose`` is used for a single high-resolution
capture, which yields few but cleaner samples.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

_NON_ALNUM = re.compile(r'[^A-Z0-9]')


def normalize_text(text: Optional[str]) -> str:
    """Uppercase and keep only A-Z0-9"""
    if not text:
        return ""
    return _NON_ALNUM.sub("", text.strip().upper())


@dataclass(frozen=True)
class PlateShapePolicy:
    """Length, letter/digit mix and optional pattern check for plate text"""
    name: str
    min_length: int
    max_length: int
    min_letters: int = 1
    min_digits: int = 1
    pattern: Optional[str] = None

    def __post_init__(self):
        if self.min_length <= 0 or self.min_length > self.max_length:
            raise ValueError(
                f"Invalid length bounds for policy '{self.name}': "
                f"[{self.min_length}, {self.max_length}]"
            )
        if self.pattern is not None:
            re.compile(self.pattern)

    def accepts(self, text: str) -> bool:
        if not text or not self.min_length <= len(text) <= self.max_length:
            return False

        letters = sum(c.isalpha() for c in text)
        digits = sum(c.isdigit() for c in text)
        if letters < self.min_letters or digits < self.min_digits:
            return False

        if self.pattern is not None:
            return re.fullmatch(self.pattern, text) is not None

        return True


STRICT_POLICY = PlateShapePolicy(
    name='strict',
    min_length=5,
    max_length=8,
    min_letters=2,
    min_digits=1,
    pattern=r'[A-Z]{1,3}[0-9]{1,4}[A-Z]{0,2}',
)

LOOSE_POLICY = PlateShapePolicy(
    name='loose',
    min_length=4,
    max_length=8,
    min_letters=1,
    min_digits=1,
)

POLICIES: Dict[str, PlateShapePolicy] = {
    STRICT_POLICY.name: STRICT_POLICY,
    LOOSE_POLICY.name: LOOSE_POLICY,
}


def get_policy(policy) -> PlateShapePolicy:
    """Resolve a policy name (or pass a policy object through)"""
    if isinstance(policy, PlateShapePolicy):
        return policy
    try:
        return POLICIES[policy]
    except KeyError:
        raise ValueError(
            f"Unknown plate shape policy '{policy}', expected one of {sorted(POLICIES)}"
        ) from None
