"""
Factor Normalizer

Keeps one malfunctioning indicator from dominating the weighted sum: raw
factor confidences more than 2σ from the cross-factor mean are pulled back
to the 2σ boundary, then everything is bounded to [0.1, 1.0].
"""

import logging
from typing import Dict, Optional

import numpy as np

from alphaconfluence.config import NormalizationConfig

logger = logging.getLogger(__name__)


class FactorNormalizer:
    """Outlier clipping + bounding of per-factor confidences"""

    def __init__(
        self,
        outlier_threshold: Optional[float] = None,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None
    ):
        self.outlier_threshold = (
            NormalizationConfig.OUTLIER_THRESHOLD if outlier_threshold is None else outlier_threshold
        )
        self.min_value = NormalizationConfig.MIN_FACTOR_CONFIDENCE if min_value is None else min_value
        self.max_value = NormalizationConfig.MAX_FACTOR_CONFIDENCE if max_value is None else max_value

    def normalize(self, raw: Dict[str, float]) -> Dict[str, float]:
        """
        Args:
            raw: factor name -> raw confidence

        Returns:
            factor name -> normalized confidence in [min_value, max_value]
        """
        if not raw:
            return {}

        names = list(raw.keys())
        values = np.array([float(raw[n]) for n in names], dtype=float)
        values = np.nan_to_num(values, nan=NormalizationConfig.DEFAULT_FACTOR_CONFIDENCE,
                               posinf=self.max_value, neginf=self.min_value)

        mean = float(np.mean(values))
        std = float(np.std(values))
        bound = self.outlier_threshold * std

        clipped = np.clip(values, mean - bound, mean + bound)
        outliers = [n for n, v, c in zip(names, values, clipped) if v != c]
        if outliers:
            logger.debug(f"Clipped outlier factors {outliers} to mean {mean:.3f} ± {bound:.3f}")

        bounded = np.clip(clipped, self.min_value, self.max_value)
        return {name: float(value) for name, value in zip(names, bounded)}
