"""
Confidence Adjustment Chain

Context-dependent corrections applied after aggregation, as one explicit
chain:

    adjusted = clamp(confidence × fib_mult × gamma_mult × confluence_mult
                     + reliability_term + trend_term, 0, 1)

Multipliers:
- Fibonacci zone: COMPRESSION 1.2 ... EXHAUSTION 0.3
- Gamma exposure (normalized): < -0.5 1.2, < -0.1 1.1, > 0.5 0.8, > 0.1 0.9
- Confluence: > 0.7 1.1, < 0.4 0.9

Additive history terms:
- (reliability - 0.5) × 0.1
- +0.05 RISING / -0.05 FALLING trend

Nothing is ever divided by the incoming confidence, so zero and near-zero
inputs are well defined. Every step is recorded.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from alphaconfluence.config import AdjustmentConfig
from alphaconfluence.quant.factor_models import clamp
from alphaconfluence.quant.instrument_history import ConfidenceTrend, HistorySummary

logger = logging.getLogger(__name__)


@dataclass
class AdjustmentStep:
    name: str
    kind: str           # "multiplier" or "additive"
    value: float
    detail: str = ""

    def to_dict(self) -> Dict:
        return {'name': self.name, 'kind': self.kind, 'value': round(self.value, 4), 'detail': self.detail}


@dataclass
class AdjustedConfidence:
    original: float
    adjusted: float
    multiplier: float = 1.0
    additive: float = 0.0
    steps: List[AdjustmentStep] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'original': round(self.original, 4),
            'adjusted': round(self.adjusted, 4),
            'multiplier': round(self.multiplier, 4),
            'additive': round(self.additive, 4),
            'steps': [s.to_dict() for s in self.steps],
        }


def history_adjustment(history: Optional[HistorySummary]) -> float:
    """Additive reliability + trend term for an instrument's history"""
    if history is None:
        return 0.0

    adjustment = (history.reliability - 0.5) * AdjustmentConfig.RELIABILITY_SCALE
    if history.trend == ConfidenceTrend.RISING:
        adjustment += AdjustmentConfig.TREND_ADJUSTMENT
    elif history.trend == ConfidenceTrend.FALLING:
        adjustment -= AdjustmentConfig.TREND_ADJUSTMENT
    return adjustment


class ConfidenceAdjustmentChain:

    def apply(
        self,
        confidence: float,
        fib_zone: Optional[str] = None,
        gamma_exposure: Optional[float] = None,
        confluence: Optional[float] = None,
        history: Optional[HistorySummary] = None
    ) -> AdjustedConfidence:
        """
        Args:
            confidence: Enhanced confidence, 0-1
            fib_zone: Fibonacci zone name (COMPRESSION, MID_EXPANSION, ...)
            gamma_exposure: Normalized net gamma exposure
            confluence: Directional confluence, 0-1
            history: Instrument history summary for the additive terms
        """
        original = clamp(confidence)
        steps: List[AdjustmentStep] = []
        multiplier = 1.0

        if fib_zone is not None:
            zone = str(fib_zone).upper()
            zone_mult = AdjustmentConfig.FIBONACCI_ZONE_MULTIPLIERS.get(zone)
            if zone_mult is None:
                logger.debug(f"Unknown Fibonacci zone {fib_zone!r}, no adjustment")
                zone_mult = 1.0
            multiplier *= zone_mult
            steps.append(AdjustmentStep('fibonacci_zone', 'multiplier', zone_mult, zone))

        if gamma_exposure is not None:
            regime = AdjustmentConfig.get_gamma_regime(gamma_exposure)
            gamma_mult = AdjustmentConfig.GAMMA_EXPOSURE_MULTIPLIERS[regime]
            multiplier *= gamma_mult
            steps.append(AdjustmentStep('gamma_exposure', 'multiplier', gamma_mult, regime))

        if confluence is not None:
            if confluence > AdjustmentConfig.CONFLUENCE_HIGH:
                confluence_mult, detail = AdjustmentConfig.CONFLUENCE_BOOST, 'HIGH'
            elif confluence < AdjustmentConfig.CONFLUENCE_LOW:
                confluence_mult, detail = AdjustmentConfig.CONFLUENCE_PENALTY, 'LOW'
            else:
                confluence_mult, detail = 1.0, 'MODERATE'
            multiplier *= confluence_mult
            steps.append(AdjustmentStep('confluence', 'multiplier', confluence_mult, detail))

        additive = history_adjustment(history)
        if history is not None:
            steps.append(AdjustmentStep(
                'history', 'additive', additive,
                f"reliability={history.reliability:.2f}, trend={history.trend.value}"
            ))

        adjusted = clamp(original * multiplier + additive)
        return AdjustedConfidence(
            original=original,
            adjusted=adjusted,
            multiplier=multiplier,
            additive=additive,
            steps=steps,
        )
