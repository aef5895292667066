"""
Conviction Scoring

Non-linear grade of how much to trust an enhanced confidence:

    base       = confidence + 0.2 · (strength_consistency + direction_alignment) / 2
    conviction = clamp(base ** 1.1, 0, 1)

strength_consistency = max(0, 1 - sqrt(var(strengths)))
direction_alignment  = max(0, 1 - sqrt(var(direction scores)))

The mild convexity rewards high-confidence, well-aligned signals more than
proportionally.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable

import numpy as np

from alphaconfluence.config import ConvictionConfig
from alphaconfluence.quant.factor_models import Direction, clamp, normalize_direction

logger = logging.getLogger(__name__)


class ConvictionLevel(Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


@dataclass
class ConvictionBreakdown:
    score: float
    level: ConvictionLevel
    base: float
    strength_consistency: float
    direction_alignment: float

    def to_dict(self) -> Dict:
        return {
            'score': round(self.score, 4),
            'level': self.level.value,
            'base': round(self.base, 4),
            'strength_consistency': round(self.strength_consistency, 4),
            'direction_alignment': round(self.direction_alignment, 4),
        }


class ConvictionScorer:

    def __init__(self, consistency_bonus: float = None, power: float = None):
        self.consistency_bonus = ConvictionConfig.CONSISTENCY_BONUS if consistency_bonus is None else consistency_bonus
        self.power = ConvictionConfig.POWER if power is None else power

    @staticmethod
    def _consistency(values: np.ndarray) -> float:
        if values.size == 0:
            return 0.0
        return max(0.0, 1 - float(np.sqrt(np.var(values))))

    def score(
        self,
        confidence: float,
        strengths: Iterable[float],
        directions: Iterable[Direction]
    ) -> ConvictionBreakdown:
        strength_values = np.clip(np.array(list(strengths), dtype=float), 0.0, 1.0)
        direction_values = np.array([normalize_direction(d) for d in directions], dtype=float)

        strength_consistency = self._consistency(strength_values)
        direction_alignment = self._consistency(direction_values)

        base = clamp(confidence) + self.consistency_bonus * (strength_consistency + direction_alignment) / 2
        conviction = clamp(base ** self.power)

        return ConvictionBreakdown(
            score=conviction,
            level=self.level(conviction),
            base=base,
            strength_consistency=strength_consistency,
            direction_alignment=direction_alignment,
        )

    def conviction(
        self,
        confidence: float,
        strengths: Iterable[float],
        directions: Iterable[Direction]
    ) -> float:
        return self.score(confidence, strengths, directions).score

    @staticmethod
    def level(score: float) -> ConvictionLevel:
        return ConvictionLevel(ConvictionConfig.get_level(score))
