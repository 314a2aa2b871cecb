# fakescan/scanner/chooser.py
from __future__ import annotations

import random
import threading
from typing import Optional


class WeightedChooser:
    """
    Probability-weighted coin flip.

    The probability is quantized to whole-percent weights, so 0.255 behaves
    like 0.25. `pick()` returns True with that probability.
    """

    def __init__(self, probability: float, rng: Optional[random.Random] = None):
        if not 0 <= probability <= 1:
            raise ValueError(f"probability must be in [0, 1], got {probability}")
        # truncate, tolerating float error (0.29 * 100 == 28.999...)
        self.true_weight = int(probability * 100 + 1e-9)
        self.false_weight = 100 - self.true_weight
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    @property
    def probability(self) -> float:
        return self.true_weight / 100

    def pick(self) -> bool:
        if self.true_weight == 0:
            return False
        if self.false_weight == 0:
            return True
        with self._lock:
            return self._rng.randrange(100) < self.true_weight
