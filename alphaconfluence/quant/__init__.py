"""
AlphaConfluence Quant Module - Confidence Aggregation Pipeline

1. Factor models - the six factors and their scores
2. Factor normalizer - outlier clipping and bounding
3. Weighted aggregator - validated weight vector, breakdown, signal quality
4. Confluence + conviction scoring
5. Adjustment chain - Fibonacci / gamma / confluence / history corrections
6. Instrument history store
7. Cross-instrument normalization and watch-list recommendation
"""

from .factor_models import (
    FACTOR_ORDER,
    FactorName,
    FactorScore,
    SignalDirection,
    normalize_direction,
)

from .factor_normalizer import FactorNormalizer

from .weighted_aggregator import (
    AggregationResult,
    ContributionAnalysis,
    QualityLevel,
    SignalQuality,
    WeightConfigurationError,
    WeightedAggregator,
    WeightVector,
)

from .confluence import ConfluenceCalculator

from .conviction import (
    ConvictionBreakdown,
    ConvictionLevel,
    ConvictionScorer,
)

from .instrument_history import (
    ConfidenceTrend,
    HistorySummary,
    InstrumentHistory,
    InstrumentHistoryStore,
)

from .confidence_adjustments import (
    AdjustedConfidence,
    AdjustmentStep,
    ConfidenceAdjustmentChain,
)

from .cross_instrument import (
    CrossInstrumentNormalizer,
    MultiInstrumentConfidence,
    RecommendedFocus,
)

__all__ = [
    'FACTOR_ORDER', 'FactorName', 'FactorScore', 'SignalDirection', 'normalize_direction',
    'FactorNormalizer',
    'AggregationResult', 'ContributionAnalysis', 'QualityLevel', 'SignalQuality',
    'WeightConfigurationError', 'WeightedAggregator', 'WeightVector',
    'ConfluenceCalculator',
    'ConvictionBreakdown', 'ConvictionLevel', 'ConvictionScorer',
    'ConfidenceTrend', 'HistorySummary', 'InstrumentHistory', 'InstrumentHistoryStore',
    'AdjustedConfidence', 'AdjustmentStep', 'ConfidenceAdjustmentChain',
    'CrossInstrumentNormalizer', 'MultiInstrumentConfidence', 'RecommendedFocus',
]
