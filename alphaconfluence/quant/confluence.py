"""
Directional confluence across factors.

confluence = max(0, 1 - 2·MAD) over the factor direction scores, so six
identical directions give 1.0 and a 3/3 bullish/bearish split gives 0.0.
"""

import logging
from typing import Mapping, Optional

import numpy as np

from alphaconfluence.quant.factor_models import Direction, SignalDirection, direction_from_score, normalize_direction

logger = logging.getLogger(__name__)


class ConfluenceCalculator:

    @staticmethod
    def direction_scores(directions: Mapping[str, Direction]) -> np.ndarray:
        return np.array([normalize_direction(d) for d in directions.values()], dtype=float)

    def confluence(self, directions: Mapping[str, Direction]) -> float:
        """Agreement of factor directions, 0 (split) to 1 (unanimous)"""
        scores = self.direction_scores(directions)
        if scores.size == 0:
            return 0.0

        mean_abs_deviation = float(np.mean(np.abs(scores - np.mean(scores))))
        return max(0.0, 1 - 2 * mean_abs_deviation)

    def signal_direction(
        self,
        directions: Mapping[str, Direction],
        confidences: Optional[Mapping[str, float]] = None
    ) -> SignalDirection:
        """Confidence-weighted mean direction mapped to BULLISH / BEARISH / NEUTRAL"""
        if not directions:
            return SignalDirection.NEUTRAL

        names = list(directions.keys())
        scores = self.direction_scores(directions)
        if confidences:
            weights = np.array([max(0.0, confidences.get(n, 0.0)) for n in names], dtype=float)
        else:
            weights = np.ones(len(names))

        if np.sum(weights) <= 0:
            weights = np.ones(len(names))

        return direction_from_score(float(np.average(scores, weights=weights)))

