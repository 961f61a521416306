"""Output verification against a reference run."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

import numpy as np

from ._compat import to_numpy

logger = logging.getLogger(__name__)

# Summed absolute difference above which an output is considered wrong
MAX_L2_NORM = 1e-4


def l2_distance(reference: Any, candidate: Any) -> float:
    """Summed absolute difference; complex values contribute ``|re| + |im|``."""
    reference = np.asarray(reference)
    candidate = np.asarray(candidate)
    if np.iscomplexobj(reference) or np.iscomplexobj(candidate):
        diff = reference.astype(np.complex128) - candidate.astype(np.complex128)
        return float(np.sum(np.abs(diff.real)) + np.sum(np.abs(diff.imag)))
    return float(np.sum(np.abs(reference.astype(np.float64) - candidate.astype(np.float64))))


class Verifier:
    """Holds the reference outputs and compares candidate outputs to them.

    Until a reference is captured every comparison passes.
    """

    def __init__(self, threshold: float = MAX_L2_NORM):
        self.threshold = threshold
        self._reference: list[np.ndarray] | None = None

    @property
    def has_reference(self) -> bool:
        return self._reference is not None

    def capture_reference(self, outputs: Sequence[Any]) -> None:
        self._reference = [np.array(to_numpy(output), copy=True) for output in outputs]

    def clear(self) -> None:
        self._reference = None

    def compare(self, outputs: Sequence[Any]) -> bool:
        """True when every output buffer matches its reference within the threshold."""
        if self._reference is None:
            return True
        if len(outputs) != len(self._reference):
            logger.warning(
                "Expected %d output buffers, got %d", len(self._reference), len(outputs)
            )
            return False

        status = True
        for position, (reference, output) in enumerate(zip(self._reference, outputs)):
            candidate = to_numpy(output)
            if candidate.shape != reference.shape:
                logger.warning(
                    "Output %d shape %s does not match reference %s",
                    position,
                    candidate.shape,
                    reference.shape,
                )
                status = False
                continue
            distance = l2_distance(reference, candidate)
            if math.isnan(distance):
                logger.warning("Results differ: L2 norm is NaN for output %d", position)
                status = False
            elif distance > self.threshold:
                logger.warning("Results differ: L2 norm is %.2e for output %d", distance, position)
                status = False
        return status
