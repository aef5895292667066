"""
Weighted Factor Aggregation

Combines normalized per-factor confidences into one enhanced confidence with
a fixed, validated weight vector:

    enhanced = clamp(Σ normalized[f] × weight[f], 0, 1)

Weight Vector:
- Production weights: trend .25, momentum .20, volume .20, ribbon .15,
  fibonacci .10, gamma .10
- Must sum to 1.0 (±1e-3) with no negative entries
- Replaced only through update_weights(); an invalid vector is rejected
  and the last valid one stays in force

Also reports how the confidence was built: per-factor breakdown, ranked
contributions, factor stability and an overall signal quality grade.

Author: AlphaConfluence Quant
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from alphaconfluence.config import ConvictionConfig, FactorWeightConfig
from alphaconfluence.quant.factor_models import clamp
from alphaconfluence.utils.logging_config import log_data_quality_issue

logger = logging.getLogger(__name__)


class WeightConfigurationError(Exception):
    """Raised when a weight vector breaks the sum / sign invariant."""
    pass


class QualityLevel(Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    VERY_POOR = "VERY_POOR"


class WeightVector:
    """Immutable factor -> weight mapping validated at construction"""

    def __init__(self, weights: Mapping[str, float], tolerance: Optional[float] = None):
        self._tolerance = FactorWeightConfig.SUM_TOLERANCE if tolerance is None else tolerance
        self._weights = {str(k): float(v) for k, v in weights.items()}

        issues = self.validate(self._weights, self._tolerance)
        if issues:
            raise WeightConfigurationError('; '.join(issues))

    @staticmethod
    def validate(weights: Mapping[str, float], tolerance: float = FactorWeightConfig.SUM_TOLERANCE) -> List[str]:
        """Invariant violations for ``weights`` (empty list when valid)"""
        issues = []
        if not weights:
            return ['Weight vector is empty']

        negative = [k for k, v in weights.items() if v < 0]
        if negative:
            issues.append(f"Negative weights for {sorted(negative)}")

        non_finite = [k for k, v in weights.items() if not np.isfinite(v)]
        if non_finite:
            issues.append(f"Non-finite weights for {sorted(non_finite)}")
            return issues

        total = sum(weights.values())
        if abs(total - 1.0) > tolerance:
            issues.append(f"Weights sum to {total:.4f}, expected 1.0 ± {tolerance}")
        return issues

    @classmethod
    def production(cls) -> 'WeightVector':
        return cls(FactorWeightConfig.get_weights())

    @property
    def total(self) -> float:
        return sum(self._weights.values())

    def get(self, factor: str, default: float = 0.0) -> float:
        return self._weights.get(factor, default)

    def __getitem__(self, factor: str) -> float:
        return self._weights[factor]

    def __contains__(self, factor: object) -> bool:
        return factor in self._weights

    def __iter__(self):
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, WeightVector):
            return self._weights == other._weights
        return NotImplemented

    def __repr__(self) -> str:
        return f"WeightVector({self._weights})"

    def as_dict(self) -> Dict[str, float]:
        return dict(self._weights)


@dataclass
class AggregationResult:
    """Enhanced confidence plus its per-factor breakdown"""
    enhanced_confidence: float
    breakdown: Dict[str, Dict[str, float]]
    weights: Dict[str, float]

    def to_dict(self) -> Dict:
        return {
            'enhanced_confidence': round(self.enhanced_confidence, 4),
            'breakdown': {
                name: {k: round(v, 4) for k, v in entry.items()}
                for name, entry in self.breakdown.items()
            },
            'weights': dict(self.weights),
        }


@dataclass
class ContributionAnalysis:
    ranked_contributions: List[Dict[str, float]] = field(default_factory=list)
    key_drivers: List[str] = field(default_factory=list)
    weak_factors: List[str] = field(default_factory=list)
    diversity_score: float = 0.0
    dominant_factor: Optional[str] = None
    dominant_factor_contribution: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'ranked_contributions': [dict(c) for c in self.ranked_contributions],
            'key_drivers': list(self.key_drivers),
            'weak_factors': list(self.weak_factors),
            'diversity_score': self.diversity_score,
            'dominant_factor': self.dominant_factor,
            'dominant_factor_contribution': self.dominant_factor_contribution,
        }


@dataclass
class SignalQuality:
    overall_score: float
    level: QualityLevel
    confidence_component: float
    conviction_component: float
    stability_component: float
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'overall_score': self.overall_score,
            'level': self.level.value,
            'confidence_component': self.confidence_component,
            'conviction_component': self.conviction_component,
            'stability_component': self.stability_component,
            'insights': list(self.insights),
        }


def _quality_level(score: float) -> QualityLevel:
    levels = ConvictionConfig.QUALITY_LEVELS
    if score >= levels['EXCELLENT']:
        return QualityLevel.EXCELLENT
    elif score >= levels['GOOD']:
        return QualityLevel.GOOD
    elif score >= levels['FAIR']:
        return QualityLevel.FAIR
    elif score >= levels['POOR']:
        return QualityLevel.POOR
    return QualityLevel.VERY_POOR


def _quality_insights(confidence: float, conviction: float, stability: float, level: QualityLevel) -> List[str]:
    insights = []

    if level == QualityLevel.EXCELLENT:
        insights.append('Exceptional signal quality with high confidence, conviction, and stability')
    elif level == QualityLevel.GOOD:
        insights.append('Good signal quality suitable for standard position sizing')
    elif level == QualityLevel.FAIR:
        insights.append('Fair signal quality - consider reduced position sizing')
    else:
        insights.append('Poor signal quality - avoid new positions or use minimal sizing')

    if confidence > 0.8:
        insights.append('High confidence across multiple factors')
    elif confidence < 0.4:
        insights.append('Low confidence suggests waiting for better setup')

    if conviction > 0.8:
        insights.append('Strong conviction with aligned factor signals')
    elif conviction < 0.4:
        insights.append('Weak conviction due to conflicting factor signals')

    if stability > 0.7:
        insights.append('High factor stability increases signal reliability')
    elif stability < 0.4:
        insights.append('Low factor stability suggests volatile signal conditions')

    return insights


class WeightedAggregator:
    """
    Weighted sum of normalized factor confidences.

    Pure with respect to its inputs: the only state is the current weight
    vector, which changes only through update_weights().
    """

    def __init__(self, weights: Optional[WeightVector] = None):
        self._weights = weights or self._configured_weights()
        self._lock = threading.Lock()

    @staticmethod
    def _configured_weights() -> WeightVector:
        """Environment weight vector, or the built-in defaults when it is invalid"""
        try:
            return WeightVector.production()
        except WeightConfigurationError as e:
            log_data_quality_issue(
                logger,
                'config_rejected',
                f"Configured factor weights rejected, using defaults: {e}",
                severity='warning',
                rejected_weights=FactorWeightConfig.get_weights(),
            )
            return WeightVector(FactorWeightConfig.DEFAULT_WEIGHTS)

    @property
    def weights(self) -> WeightVector:
        return self._weights

    def update_weights(self, weights: Mapping[str, float]) -> Tuple[bool, List[str]]:
        """
        Replace the weight vector.

        Returns:
            (True, []) when accepted, (False, reasons) when rejected. A rejected
            update leaves the previous vector in force.
        """
        try:
            candidate = WeightVector(weights)
        except WeightConfigurationError as e:
            reasons = str(e).split('; ')
            log_data_quality_issue(
                logger,
                'config_rejected',
                f"Weight update rejected, keeping previous weights: {e}",
                severity='warning',
                rejected_weights=dict(weights),
            )
            return False, reasons

        with self._lock:
            self._weights = candidate
        logger.info(f"Factor weights updated: {candidate.as_dict()}")
        return True, []

    def verify_weights(self) -> Tuple[bool, List[str]]:
        issues = WeightVector.validate(self._weights.as_dict())
        return not issues, issues

    def aggregate(
        self,
        normalized: Mapping[str, float],
        strengths: Optional[Mapping[str, float]] = None,
        weights: Optional[WeightVector] = None
    ) -> AggregationResult:
        """
        Args:
            normalized: factor -> normalized confidence
            strengths: factor -> strength, reported in the breakdown only
            weights: override for the current weight vector

        Factors missing from the weight vector weigh 0; weights for factors
        missing from ``normalized`` are ignored.
        """
        vector = weights or self._weights
        strengths = strengths or {}

        contributions = {}
        for name, confidence in normalized.items():
            contributions[name] = clamp(confidence) * vector.get(name, 0.0)

        enhanced = clamp(sum(contributions.values()))

        breakdown = {}
        for name, confidence in normalized.items():
            contribution = contributions[name]
            breakdown[name] = {
                'weight': vector.get(name, 0.0),
                'confidence': clamp(confidence),
                'strength': clamp(strengths.get(name, 0.0)),
                'contribution': contribution,
                'percent_of_total': contribution / enhanced * 100 if enhanced > 0 else 0.0,
            }

        return AggregationResult(
            enhanced_confidence=enhanced,
            breakdown=breakdown,
            weights=vector.as_dict(),
        )

    def analyze_contributions(self, result: AggregationResult) -> ContributionAnalysis:
        """Rank factors by weighted contribution"""
        if not result.breakdown:
            return ContributionAnalysis()

        ranked = sorted(
            (
                {
                    'factor': name,
                    'confidence': entry['confidence'],
                    'strength': entry['strength'],
                    'weight': entry['weight'],
                    'weighted_contribution': entry['contribution'],
                }
                for name, entry in result.breakdown.items()
            ),
            key=lambda c: c['weighted_contribution'],
            reverse=True,
        )

        values = np.array([c['weighted_contribution'] for c in ranked])
        total = float(np.sum(values))
        if total > 0:
            diversity = 1 - float(np.sum(np.abs(values - total / len(values)))) / (2 * total)
        else:
            diversity = 0.0

        return ContributionAnalysis(
            ranked_contributions=ranked,
            key_drivers=[c['factor'] for c in ranked[:3]],
            weak_factors=[c['factor'] for c in ranked[-2:]],
            diversity_score=round(diversity, 3),
            dominant_factor=ranked[0]['factor'],
            dominant_factor_contribution=round(ranked[0]['weighted_contribution'], 3),
        )

    @staticmethod
    def factor_stability(confidences: Mapping[str, float]) -> float:
        """1 - coefficient of variation of the factor confidences, floored at 0"""
        values = np.array(list(confidences.values()), dtype=float)
        if values.size == 0:
            return 0.0
        mean = float(np.mean(values))
        cv = float(np.std(values)) / mean if mean > 0 else 1.0
        return max(0.0, 1 - cv)

    @staticmethod
    def assess_signal_quality(confidence: float, conviction: float, stability: float) -> SignalQuality:
        score = (
            confidence * ConvictionConfig.QUALITY_CONFIDENCE_WEIGHT
            + conviction * ConvictionConfig.QUALITY_CONVICTION_WEIGHT
            + stability * ConvictionConfig.QUALITY_STABILITY_WEIGHT
        )
        level = _quality_level(score)
        return SignalQuality(
            overall_score=round(score, 3),
            level=level,
            confidence_component=round(confidence, 3),
            conviction_component=round(conviction, 3),
            stability_component=round(stability, 3),
            insights=_quality_insights(confidence, conviction, stability, level),
        )
