"""Rolling portfolio-value history backing the equity curve and day return.

The buffer is a ``deque`` with ``maxlen`` so the oldest sample falls off the
front once the cap is reached. The first sample is the day-return baseline, so
FIFO eviction moves that baseline forward in time as the window slides.
"""

from collections import deque
from datetime import datetime
from typing import List, Optional

from models import EquitySample

DEFAULT_LIMIT = 50


def time_label(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%H:%M")


class EquityHistory:
    def __init__(self, max_size: int = DEFAULT_LIMIT):
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        self._samples: deque[EquitySample] = deque(maxlen=max_size)

    @property
    def max_size(self) -> int:
        return self._samples.maxlen

    def append(self, value: float, label: Optional[str] = None) -> bool:
        """Record ``value`` unless it repeats the last recorded value.

        Returns True when a sample was added. Repeated values are skipped so a
        flat account does not pad the bounded window with identical points.
        """
        if self._samples and self._samples[-1].value == value:
            return False
        self._samples.append(EquitySample(label=label or time_label(), value=value))
        return True

    @property
    def baseline(self) -> Optional[EquitySample]:
        return self._samples[0] if self._samples else None

    def samples(self) -> List[EquitySample]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)
