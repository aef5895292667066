"""
Signal Confidence Engine
========================

Per-instrument confidence pipeline and watch-list fan-out:

    factor scores ──► FactorNormalizer ──► WeightedAggregator ─┐
         │                                                    ├─► ConvictionScorer
         └──────────► ConfluenceCalculator ───────────────────┘
                                 │
                  ConfidenceAdjustmentChain + InstrumentHistoryStore
                                 │
                          ConfidenceResult
                                 │  (watch-list)
                       CrossInstrumentNormalizer

Factor providers (ready FactorScores or zero-argument callables) run in a
thread pool; results are reduced in fixed factor order regardless of which
finishes first. The gamma factor comes from GammaExposureEngine when an
option chain is supplied. A provider that raises is logged and replaced by
the neutral default factor; nothing here propagates as a crash.

Usage:
    engine = SignalConfidenceEngine()
    result = engine.evaluate_instrument("SPY", factors, option_chain=snapshot)
    watchlist = engine.evaluate_watchlist([InstrumentInputs("SPY", factors), ...])

Author: AlphaConfluence Quant
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from alphaconfluence.config import EngineConfig, NormalizationConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot
from alphaconfluence.gamma.gamma_exposure_engine import GammaExposureAnalysis, GammaExposureEngine
from alphaconfluence.quant.confidence_adjustments import AdjustedConfidence, ConfidenceAdjustmentChain
from alphaconfluence.quant.confluence import ConfluenceCalculator
from alphaconfluence.quant.conviction import ConvictionLevel, ConvictionScorer
from alphaconfluence.quant.cross_instrument import CrossInstrumentNormalizer, MultiInstrumentConfidence
from alphaconfluence.quant.factor_models import FACTOR_ORDER, FactorName, FactorScore, SignalDirection
from alphaconfluence.quant.factor_normalizer import FactorNormalizer
from alphaconfluence.quant.instrument_history import ConfidenceTrend, InstrumentHistoryStore
from alphaconfluence.quant.weighted_aggregator import (
    ContributionAnalysis,
    SignalQuality,
    WeightedAggregator,
)
from alphaconfluence.utils.logging_config import (
    LogContext,
    log_confidence_decision,
    log_error_with_context,
    log_execution_time,
)

logger = logging.getLogger(__name__)

FactorProvider = Union[FactorScore, Callable[[], FactorScore]]


@dataclass(frozen=True)
class InstrumentInputs:
    """Everything needed to score one instrument for one cycle"""
    instrument: str
    factors: Mapping[str, FactorProvider] = field(default_factory=dict)
    option_chain: Optional[OptionChainSnapshot] = None
    closes: Optional[Sequence[float]] = None
    fib_zone: Optional[str] = None


@dataclass(frozen=True)
class ConfidenceResult:
    """Scored instrument. Superseded, never updated, by the next evaluation."""
    instrument: str
    enhanced_confidence: float
    conviction_score: float
    conviction_level: ConvictionLevel
    signal_direction: SignalDirection
    breakdown: Dict[str, Dict[str, float]]
    confluence: float
    adjusted_confidence: float
    adjustments: AdjustedConfidence
    confidence_delta: float
    reliability: float
    trend: ConfidenceTrend
    contribution_analysis: ContributionAnalysis
    factor_stability: float
    signal_quality: SignalQuality
    factors: Dict[str, FactorScore] = field(default_factory=dict)
    normalized_factors: Dict[str, float] = field(default_factory=dict)
    gamma_analysis: Optional[GammaExposureAnalysis] = None
    reasons: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instrument': self.instrument,
            'enhanced_confidence': round(self.enhanced_confidence, 4),
            'conviction_score': round(self.conviction_score, 4),
            'conviction_level': self.conviction_level.value,
            'signal_direction': self.signal_direction.value,
            'breakdown': {
                name: {k: round(v, 4) for k, v in entry.items()}
                for name, entry in self.breakdown.items()
            },
            'confluence': round(self.confluence, 4),
            'adjusted_confidence': round(self.adjusted_confidence, 4),
            'adjustments': self.adjustments.to_dict(),
            'confidence_delta': round(self.confidence_delta, 4),
            'reliability': round(self.reliability, 4),
            'trend': self.trend.value,
            'contribution_analysis': self.contribution_analysis.to_dict(),
            'factor_stability': round(self.factor_stability, 3),
            'signal_quality': self.signal_quality.to_dict(),
            'factors': {name: f.to_dict() for name, f in self.factors.items()},
            'normalized_factors': {k: round(v, 4) for k, v in self.normalized_factors.items()},
            'gamma_analysis': self.gamma_analysis.to_dict() if self.gamma_analysis else None,
            'reasons': list(self.reasons),
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class WatchlistResult:
    results: Dict[str, ConfidenceResult]
    cross_instrument: MultiInstrumentConfidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': {k: r.to_dict() for k, r in self.results.items()},
            'cross_instrument': self.cross_instrument.to_dict(),
        }


class SignalConfidenceEngine:
    """
    Confidence pipeline with injected collaborators.

    Each engine owns (or is given) its own InstrumentHistoryStore, so
    independent engines never share history.
    """

    def __init__(
        self,
        aggregator: Optional[WeightedAggregator] = None,
        history_store: Optional[InstrumentHistoryStore] = None,
        normalizer: Optional[FactorNormalizer] = None,
        gamma_engine: Optional[GammaExposureEngine] = None,
        adjustment_chain: Optional[ConfidenceAdjustmentChain] = None,
        cross_normalizer: Optional[CrossInstrumentNormalizer] = None,
        max_workers: Optional[int] = None,
        apply_adjustments: Optional[bool] = None
    ):
        self.aggregator = aggregator or WeightedAggregator()
        self.history_store = history_store or InstrumentHistoryStore()
        self.normalizer = normalizer or FactorNormalizer()
        self.gamma_engine = gamma_engine or GammaExposureEngine()
        self.adjustment_chain = adjustment_chain or ConfidenceAdjustmentChain()
        self.cross_normalizer = cross_normalizer or CrossInstrumentNormalizer()
        self.confluence_calculator = ConfluenceCalculator()
        self.conviction_scorer = ConvictionScorer()
        self.max_workers = max_workers or EngineConfig.MAX_WORKERS
        self.apply_adjustments = EngineConfig.APPLY_ADJUSTMENTS if apply_adjustments is None else apply_adjustments

    # ------------------------------------------------------------ factor fan-out

    def _resolve_factor(self, instrument: str, name: str, provider: FactorProvider) -> FactorScore:
        try:
            score = provider() if callable(provider) else provider
            if not isinstance(score, FactorScore):
                raise TypeError(f"provider returned {type(score).__name__}, expected FactorScore")
            return score
        except Exception as e:
            log_error_with_context(
                logger,
                f"{instrument}: {name} factor provider failed, using neutral default",
                e,
                instrument=instrument,
                factor=name,
            )
            return FactorScore.neutral(name, f"{name} factor unavailable: {e}")

    def _collect_factors(
        self,
        inputs: InstrumentInputs
    ) -> Tuple[Dict[str, FactorScore], Optional[GammaExposureAnalysis]]:
        providers = {}
        for name, provider in inputs.factors.items():
            key = name.value if isinstance(name, FactorName) else str(name).lower()
            if key not in FACTOR_ORDER:
                logger.warning(f"{inputs.instrument}: ignoring unknown factor {name!r}")
                continue
            providers[key] = provider
        gamma_analysis = None

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                name: executor.submit(self._resolve_factor, inputs.instrument, name, provider)
                for name, provider in providers.items()
            }
            gamma_future = None
            if FactorName.GAMMA.value not in providers:
                gamma_future = executor.submit(self.gamma_engine.analyze, inputs.option_chain, inputs.closes)

            # Deterministic reduction in fixed factor order
            factors = {name: futures[name].result() for name in FACTOR_ORDER if name in futures}

            if gamma_future is not None:
                try:
                    gamma_analysis = gamma_future.result()
                    factors[FactorName.GAMMA.value] = gamma_analysis.to_factor_score()
                except Exception as e:
                    log_error_with_context(
                        logger,
                        f"{inputs.instrument}: gamma analysis failed, using neutral default",
                        e,
                        instrument=inputs.instrument,
                        factor=FactorName.GAMMA.value,
                    )
                    factors[FactorName.GAMMA.value] = FactorScore.neutral(
                        FactorName.GAMMA, f"gamma factor unavailable: {e}"
                    )

        # Missing standard factors get the neutral default
        for name in FACTOR_ORDER:
            if name not in factors:
                factors[name] = FactorScore.neutral(name, f"No {name} factor supplied")

        return {n: factors[n] for n in FACTOR_ORDER}, gamma_analysis

    # ------------------------------------------------------------ pipeline

    def evaluate_instrument(
        self,
        instrument: str,
        factors: Optional[Mapping[str, FactorProvider]] = None,
        option_chain: Optional[OptionChainSnapshot] = None,
        closes: Optional[Sequence[float]] = None,
        fib_zone: Optional[str] = None
    ) -> ConfidenceResult:
        """Score one instrument and record it in history"""
        return self.evaluate(InstrumentInputs(
            instrument=instrument,
            factors=factors or {},
            option_chain=option_chain,
            closes=closes,
            fib_zone=fib_zone,
        ))

    def evaluate(self, inputs: InstrumentInputs) -> ConfidenceResult:
        instrument = inputs.instrument
        factors, gamma_analysis = self._collect_factors(inputs)

        reasons: List[str] = []
        for name, factor in factors.items():
            reasons.extend(f"{name}: {r}" for r in factor.reasons)

        raw = {name: f.confidence for name, f in factors.items()}
        directions = {name: f.direction for name, f in factors.items()}

        normalized = self.normalizer.normalize(raw)
        # Factor strength blends the normalized confidence with the provider's signal strength
        strengths = {name: (normalized[name] + f.strength) / 2 for name, f in factors.items()}
        aggregation = self.aggregator.aggregate(normalized, strengths)
        enhanced = aggregation.enhanced_confidence

        confluence = self.confluence_calculator.confluence(directions)
        direction = self.confluence_calculator.signal_direction(directions, normalized)
        conviction = self.conviction_scorer.score(enhanced, strengths.values(), directions.values())

        contributions = self.aggregator.analyze_contributions(aggregation)
        stability = self.aggregator.factor_stability(normalized)
        quality = self.aggregator.assess_signal_quality(enhanced, conviction.score, stability)

        previous = self.history_store.get(instrument)
        if self.apply_adjustments:
            gamma_exposure = None
            if gamma_analysis is not None and not gamma_analysis.is_default:
                gamma_exposure = gamma_analysis.net_gamma_exposure
            adjusted = self.adjustment_chain.apply(
                enhanced,
                fib_zone=inputs.fib_zone,
                gamma_exposure=gamma_exposure,
                confluence=confluence,
                history=previous,
            )
        else:
            adjusted = AdjustedConfidence(original=enhanced, adjusted=enhanced)

        summary = self.history_store.record(instrument, adjusted.adjusted)

        result = ConfidenceResult(
            instrument=instrument,
            enhanced_confidence=enhanced,
            conviction_score=conviction.score,
            conviction_level=conviction.level,
            signal_direction=direction,
            breakdown=aggregation.breakdown,
            confluence=confluence,
            adjusted_confidence=adjusted.adjusted,
            adjustments=adjusted,
            confidence_delta=summary.confidence_delta,
            reliability=summary.reliability,
            trend=summary.trend,
            contribution_analysis=contributions,
            factor_stability=stability,
            signal_quality=quality,
            factors=factors,
            normalized_factors=normalized,
            gamma_analysis=gamma_analysis,
            reasons=reasons,
        )

        log_confidence_decision(
            instrument,
            result.adjusted_confidence,
            result.conviction_score,
            result.signal_direction.value,
            reasons=reasons,
            enhanced_confidence=round(enhanced, 4),
            conviction_level=result.conviction_level.value,
            confidence_delta=round(result.confidence_delta, 4),
        )
        return result

    def default_result(self, instrument: str, reason: str) -> ConfidenceResult:
        """Low-confidence result for an instrument whose evaluation failed outright"""
        confidence = NormalizationConfig.DEFAULT_FACTOR_CONFIDENCE
        factors = {name: FactorScore.neutral(name, reason) for name in FACTOR_ORDER}
        normalized = {name: confidence for name in FACTOR_ORDER}
        aggregation = self.aggregator.aggregate(normalized, {n: f.strength for n, f in factors.items()})
        summary = self.history_store.get(instrument)

        return ConfidenceResult(
            instrument=instrument,
            enhanced_confidence=confidence,
            conviction_score=confidence,
            conviction_level=ConvictionLevel.VERY_LOW,
            signal_direction=SignalDirection.NEUTRAL,
            breakdown=aggregation.breakdown,
            confluence=1.0,
            adjusted_confidence=confidence,
            adjustments=AdjustedConfidence(original=confidence, adjusted=confidence),
            confidence_delta=0.0,
            reliability=summary.reliability if summary else 0.5,
            trend=summary.trend if summary else ConfidenceTrend.STABLE,
            contribution_analysis=self.aggregator.analyze_contributions(aggregation),
            factor_stability=0.5,
            signal_quality=self.aggregator.assess_signal_quality(confidence, confidence, 0.5),
            factors=factors,
            normalized_factors=normalized,
            reasons=[reason],
        )

    # ------------------------------------------------------------ watch-list

    @log_execution_time()
    def evaluate_watchlist(self, watchlist: Sequence[InstrumentInputs]) -> WatchlistResult:
        """
        Score every instrument in parallel, then normalize across the list.

        Results keep watch-list order. Different instruments run concurrently;
        history writes for one instrument are serialized by the store.
        """
        with LogContext(watchlist_size=len(watchlist)):
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [(inputs.instrument, executor.submit(self.evaluate, inputs)) for inputs in watchlist]

                results: Dict[str, ConfidenceResult] = {}
                for instrument, future in futures:
                    try:
                        results[instrument] = future.result()
                    except Exception as e:
                        log_error_with_context(
                            logger,
                            f"{instrument}: evaluation failed, using default result",
                            e,
                            instrument=instrument,
                        )
                        results[instrument] = self.default_result(instrument, f"Evaluation failed: {e}")

            cross = self.cross_normalizer.evaluate(
                {name: r.adjusted_confidence for name, r in results.items()}
            )
            logger.info(
                f"Watch-list scored: {len(results)} instruments, "
                f"aggregate {cross.aggregate_confidence:.3f}, {cross.recommendation.value}"
            )

        return WatchlistResult(results=results, cross_instrument=cross)
