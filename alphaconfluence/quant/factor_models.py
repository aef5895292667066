"""
Factor Score Models

The six confidence factors and the per-factor score each provider hands to the
aggregation pipeline. Directions may be qualitative labels (BULLISH, BUYING,
ACCUMULATION...) or a continuous 0-1 score; both map onto the same [0, 1]
direction scale.

Author: AlphaConfluence Quant
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

import numpy as np

from alphaconfluence.config import NormalizationConfig


class FactorName(Enum):
    TREND = "trend"
    MOMENTUM = "momentum"
    VOLUME = "volume"
    RIBBON = "ribbon"
    FIBONACCI = "fibonacci"
    GAMMA = "gamma"


class SignalDirection(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


FACTOR_ORDER: List[str] = [f.value for f in FactorName]

BULLISH_LABELS = {'BULLISH', 'BUYING', 'ACCUMULATION'}
BEARISH_LABELS = {'BEARISH', 'SELLING', 'DISTRIBUTION'}

Direction = Union[SignalDirection, str, float, int, None]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(np.clip(value, low, high))


def normalize_direction(direction: Direction) -> float:
    """
    Map a direction onto [0, 1].

    BULLISH / BUYING / ACCUMULATION -> 1.0
    BEARISH / SELLING / DISTRIBUTION -> 0.0
    numeric scores are clamped to [0, 1]; anything else -> 0.5
    """
    if isinstance(direction, SignalDirection):
        direction = direction.value
    if isinstance(direction, bool) or direction is None:
        return NormalizationConfig.DEFAULT_FACTOR_DIRECTION
    if isinstance(direction, (int, float)):
        if not np.isfinite(direction):
            return NormalizationConfig.DEFAULT_FACTOR_DIRECTION
        return clamp(direction)

    label = str(direction).strip().upper()
    if label in BULLISH_LABELS:
        return 1.0
    if label in BEARISH_LABELS:
        return 0.0
    return NormalizationConfig.DEFAULT_FACTOR_DIRECTION


def direction_from_score(score: float) -> SignalDirection:
    """Direction label for a [0, 1] direction score"""
    if score > 0.6:
        return SignalDirection.BULLISH
    elif score < 0.4:
        return SignalDirection.BEARISH
    return SignalDirection.NEUTRAL


def _finite_or(value: Optional[float], default: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if np.isfinite(value) else default


@dataclass
class FactorScore:
    """
    One factor's reading for one instrument.

    confidence and strength are clamped to [0, 1] at construction; non-finite
    values fall back to the neutral defaults.
    """
    name: FactorName
    confidence: float
    strength: float
    direction: Direction = SignalDirection.NEUTRAL
    reasons: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.name, FactorName):
            self.name = FactorName(str(self.name).lower())
        self.confidence = clamp(_finite_or(self.confidence, NormalizationConfig.DEFAULT_FACTOR_CONFIDENCE))
        self.strength = clamp(_finite_or(self.strength, NormalizationConfig.DEFAULT_FACTOR_STRENGTH))

    @property
    def key(self) -> str:
        return self.name.value

    @property
    def direction_score(self) -> float:
        return normalize_direction(self.direction)

    @classmethod
    def neutral(cls, name: Union[FactorName, str], reason: str) -> 'FactorScore':
        """Default used when a factor cannot be computed"""
        return cls(
            name=name,
            confidence=NormalizationConfig.DEFAULT_FACTOR_CONFIDENCE,
            strength=NormalizationConfig.DEFAULT_FACTOR_STRENGTH,
            direction=NormalizationConfig.DEFAULT_FACTOR_DIRECTION,
            reasons=[reason],
        )

    def to_dict(self) -> Dict:
        direction = self.direction
        if isinstance(direction, SignalDirection):
            direction = direction.value
        return {
            'name': self.name.value,
            'confidence': round(self.confidence, 4),
            'strength': round(self.strength, 4),
            'direction': direction,
            'direction_score': self.direction_score,
            'reasons': list(self.reasons),
        }
