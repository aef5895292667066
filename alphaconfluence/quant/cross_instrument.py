"""
Cross-Instrument Confidence Normalization
=========================================

Makes confidences from different instruments comparable and summarizes a
watch-list:

    adaptive_mean = 0.7 · mean(last ≤50 values) + 0.3 · 0.6
    std           = max(population std, 0.05)
    normalized    = clamp(expit(clip(z, ±2.5)), 0.1, 0.9)

- aggregate: Σ c·c^1.5 / Σ c^1.5 over normalized values (0.5 when empty)
- consensus: max(0, 1 - 4·var) over the raw confidences (1.0 below 2)
- distribution: high > 0.7, medium > 0.5, low otherwise
- recommendation: MULTI / SELECTIVE / SINGLE decision table

One instrument is returned unchanged; an empty watch-list gives no
normalized values and a neutral 0.5 aggregate.

Author: AlphaConfluence Quant
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping

import numpy as np
import pandas as pd
from scipy.special import expit

from alphaconfluence.config import CrossInstrumentConfig

logger = logging.getLogger(__name__)


class RecommendedFocus(Enum):
    MULTI = "MULTI"
    SELECTIVE = "SELECTIVE"
    SINGLE = "SINGLE"


@dataclass
class MultiInstrumentConfidence:
    aggregate_confidence: float
    normalized_confidences: Dict[str, float]
    raw_confidences: Dict[str, float]
    top_instruments: List[str]
    distribution: Dict[str, List[str]]
    consensus: float
    recommendation: RecommendedFocus
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'aggregate_confidence': round(self.aggregate_confidence, 4),
            'normalized_confidences': {k: round(v, 4) for k, v in self.normalized_confidences.items()},
            'raw_confidences': {k: round(v, 4) for k, v in self.raw_confidences.items()},
            'top_instruments': list(self.top_instruments),
            'distribution': {k: list(v) for k, v in self.distribution.items()},
            'consensus': round(self.consensus, 4),
            'recommendation': self.recommendation.value,
            'reasons': list(self.reasons),
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per instrument, highest normalized confidence first"""
        df = pd.DataFrame({
            'instrument': list(self.raw_confidences.keys()),
            'raw_confidence': list(self.raw_confidences.values()),
            'normalized_confidence': [self.normalized_confidences.get(k) for k in self.raw_confidences],
        })
        return df.sort_values('normalized_confidence', ascending=False, kind='mergesort').reset_index(drop=True)


class CrossInstrumentNormalizer:

    def adaptive_mean(self, values: np.ndarray) -> float:
        window = values[-CrossInstrumentConfig.ADAPTIVE_WINDOW:]
        blend = CrossInstrumentConfig.ADAPTIVE_BLEND
        return float(np.mean(window)) * blend + CrossInstrumentConfig.GLOBAL_MEAN * (1 - blend)

    def normalize_across(self, confidences: Mapping[str, float]) -> Dict[str, float]:
        """
        Args:
            confidences: instrument -> confidence, in watch-list order

        Returns:
            instrument -> normalized confidence in [0.1, 0.9]
            ({} for no instruments, raw value for a single instrument)
        """
        if not confidences:
            return {}
        if len(confidences) == 1:
            return {k: float(v) for k, v in confidences.items()}

        names = list(confidences.keys())
        values = np.array([float(confidences[n]) for n in names], dtype=float)

        mean = self.adaptive_mean(values)
        std = max(float(np.std(values)), CrossInstrumentConfig.MIN_STD_DEV)
        limit = CrossInstrumentConfig.OUTLIER_THRESHOLD

        z_scores = np.clip((values - mean) / std, -limit, limit)
        squashed = np.clip(
            expit(z_scores),
            CrossInstrumentConfig.OUTPUT_FLOOR,
            CrossInstrumentConfig.OUTPUT_CEILING,
        )
        return {name: float(value) for name, value in zip(names, squashed)}

    @staticmethod
    def aggregate_confidence(normalized: Mapping[str, float]) -> float:
        if not normalized:
            return 0.5
        values = np.array(list(normalized.values()), dtype=float)
        weights = np.power(np.clip(values, 0.0, None), CrossInstrumentConfig.AGGREGATE_EXPONENT)
        total = float(np.sum(weights))
        return float(np.sum(values * weights)) / total if total > 0 else 0.5

    @staticmethod
    def consensus(confidences: Mapping[str, float]) -> float:
        if len(confidences) < 2:
            return 1.0
        variance = float(np.var(list(confidences.values())))
        return max(0.0, 1 - CrossInstrumentConfig.CONSENSUS_VARIANCE_SCALE * variance)

    @staticmethod
    def distribution(normalized: Mapping[str, float]) -> Dict[str, List[str]]:
        buckets: Dict[str, List[str]] = {'high': [], 'medium': [], 'low': []}
        for name, value in normalized.items():
            if value > CrossInstrumentConfig.HIGH_CONFIDENCE:
                buckets['high'].append(name)
            elif value > CrossInstrumentConfig.MEDIUM_CONFIDENCE:
                buckets['medium'].append(name)
            else:
                buckets['low'].append(name)
        return buckets

    @staticmethod
    def top_instruments(normalized: Mapping[str, float], count: int = None) -> List[str]:
        count = count or CrossInstrumentConfig.TOP_INSTRUMENTS
        ranked = sorted(normalized.items(), key=lambda kv: kv[1], reverse=True)
        return [name for name, _ in ranked[:count]]

    @staticmethod
    def recommend(aggregate: float, consensus: float, distribution: Dict[str, List[str]]) -> RecommendedFocus:
        high = len(distribution['high'])
        medium = len(distribution['medium'])

        if consensus > CrossInstrumentConfig.MULTI_CONSENSUS and aggregate > CrossInstrumentConfig.MULTI_AGGREGATE:
            return RecommendedFocus.MULTI
        if consensus < CrossInstrumentConfig.SELECTIVE_CONSENSUS and high > 0:
            return RecommendedFocus.SELECTIVE
        if high == 1 and medium <= CrossInstrumentConfig.SINGLE_MAX_MEDIUM:
            return RecommendedFocus.SINGLE
        return RecommendedFocus.SELECTIVE

    def evaluate(self, confidences: Mapping[str, float]) -> MultiInstrumentConfidence:
        """Normalize a watch-list and summarize it"""
        raw = {k: float(v) for k, v in confidences.items()}
        normalized = self.normalize_across(raw)
        aggregate = self.aggregate_confidence(normalized)
        consensus = self.consensus(raw)
        distribution = self.distribution(normalized)
        recommendation = self.recommend(aggregate, consensus, distribution)

        reasons = []
        if not raw:
            reasons.append('No instruments to compare')
        elif len(raw) == 1:
            reasons.append('Single instrument: confidence reported unchanged')

        logger.debug(
            f"Cross-instrument: {len(raw)} instruments, aggregate {aggregate:.3f}, "
            f"consensus {consensus:.3f}, {recommendation.value}"
        )

        return MultiInstrumentConfidence(
            aggregate_confidence=aggregate,
            normalized_confidences=normalized,
            raw_confidences=raw,
            top_instruments=self.top_instruments(normalized),
            distribution=distribution,
            consensus=consensus,
            recommendation=recommendation,
            reasons=reasons,
        )
