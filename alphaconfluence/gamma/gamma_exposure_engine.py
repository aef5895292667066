"""
Gamma Exposure Engine

Single entry point for options-gamma analysis of one instrument. Runs every
gamma component against an option chain snapshot and turns the result into
the gamma FactorScore consumed by the confidence pipeline:

1. Net dealer gamma exposure at spot
2. Dealer positioning + volatility environment
3. Flip levels (zero crossing / max rate of change / OI weighted)
4. Pinning risk (summary + detailed pin levels)
5. Acceleration zones
6. Gamma confidence adjustment

Chains with fewer than three usable strikes produce a neutral default
analysis with the reasons recorded, never an exception.

Author: AlphaConfluence Quant
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from alphaconfluence.config import GammaConfig, NormalizationConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot, validate_option_chain
from alphaconfluence.gamma.acceleration_zones import AccelerationZone, acceleration_zones
from alphaconfluence.gamma.dealer_positioning import (
    DealerPositioning,
    VolatilityEnvironment,
    VolatilityRegime,
    analyze_dealer_positioning,
    assess_volatility_environment,
    neutral_dealer_positioning,
    neutral_volatility_environment,
)
from alphaconfluence.gamma.gex_calculator import FlipAnalysis, find_flip_levels, net_gamma_exposure
from alphaconfluence.gamma.pin_risk_analyzer import (
    DetailedPinningRisk,
    PinningRisk,
    default_pin_level,
    detailed_pinning_risk,
    pinning_risk,
)
from alphaconfluence.quant.factor_models import FactorName, FactorScore, SignalDirection
from alphaconfluence.utils.logging_config import log_data_quality_issue, log_execution_time

logger = logging.getLogger(__name__)


class GammaConfidenceLevel(Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"


@dataclass
class GammaConfidenceAdjustment:
    """How gamma conditions should move directional confidence (-0.5 to +0.5)"""
    adjustment: float = 0.0
    level: GammaConfidenceLevel = GammaConfidenceLevel.MODERATE
    components: Dict[str, float] = field(default_factory=dict)
    reasoning: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'adjustment': round(self.adjustment, 4),
            'level': self.level.value,
            'components': {k: round(v, 4) for k, v in self.components.items()},
            'reasoning': list(self.reasoning),
        }


@dataclass
class GammaExposureAnalysis:
    """Complete gamma picture for one instrument"""
    symbol: str
    underlying_price: float
    net_gamma_exposure: float
    dealer_positioning: DealerPositioning
    flip_analysis: FlipAnalysis
    volatility_environment: VolatilityEnvironment
    pinning_risk: PinningRisk
    detailed_pinning: DetailedPinningRisk
    acceleration_zones: List[AccelerationZone] = field(default_factory=list)
    confidence_adjustment: GammaConfidenceAdjustment = field(default_factory=GammaConfidenceAdjustment)
    reasons: List[str] = field(default_factory=list)
    is_default: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def flip_level(self) -> Optional[float]:
        return self.flip_analysis.primary.level if self.flip_analysis.primary else None

    def to_factor_score(self) -> FactorScore:
        """
        Gamma factor for the confidence pipeline.

        Positive exposure (dealers long gamma) suppresses moves -> BEARISH,
        negative exposure amplifies them -> BULLISH.
        """
        if self.is_default:
            return FactorScore.neutral(FactorName.GAMMA, '; '.join(self.reasons) or 'Gamma analysis unavailable')

        net = self.net_gamma_exposure
        threshold = GammaConfig.POSITIONING_THRESHOLD
        if net > threshold:
            direction = SignalDirection.BEARISH
        elif net < -threshold:
            direction = SignalDirection.BULLISH
        else:
            direction = SignalDirection.NEUTRAL

        confidence = min(1.0, abs(net) + (1 - self.pinning_risk.probability) * 0.3)
        confidence = max(NormalizationConfig.MIN_FACTOR_CONFIDENCE, confidence)
        strength = min(1.0, abs(net) * 2 + self.volatility_environment.suppression_level * 0.3)

        return FactorScore(
            name=FactorName.GAMMA,
            confidence=confidence,
            strength=strength,
            direction=direction,
            reasons=list(self.confidence_adjustment.reasoning) + list(self.reasons),
        )

    def to_dict(self) -> Dict:
        return {
            'symbol': self.symbol,
            'underlying_price': self.underlying_price,
            'net_gamma_exposure': self.net_gamma_exposure,
            'flip_level': self.flip_level,
            'dealer_positioning': self.dealer_positioning.to_dict(),
            'flip_analysis': self.flip_analysis.to_dict(),
            'volatility_environment': self.volatility_environment.to_dict(),
            'pinning_risk': self.pinning_risk.to_dict(),
            'detailed_pinning': self.detailed_pinning.to_dict(),
            'acceleration_zones': [z.to_dict() for z in self.acceleration_zones],
            'confidence_adjustment': self.confidence_adjustment.to_dict(),
            'reasons': list(self.reasons),
            'is_default': self.is_default,
            'timestamp': self.timestamp.isoformat(),
        }


def _adjustment_level(adjustment: float) -> GammaConfidenceLevel:
    if adjustment > 0.2:
        return GammaConfidenceLevel.VERY_HIGH
    elif adjustment > 0.1:
        return GammaConfidenceLevel.HIGH
    elif adjustment > -0.1:
        return GammaConfidenceLevel.MODERATE
    elif adjustment > -0.2:
        return GammaConfidenceLevel.LOW
    return GammaConfidenceLevel.VERY_LOW


def gamma_confidence_adjustment(
    net_gamma: float,
    dealer: DealerPositioning,
    volatility: VolatilityEnvironment,
    pinning: DetailedPinningRisk,
    zones: List[AccelerationZone],
    days_to_expiry: int
) -> GammaConfidenceAdjustment:
    """Weighted blend of positioning, volatility, pinning, zone and expiry effects"""
    if net_gamma < 0:
        base = min(0.2, abs(net_gamma) * 0.4)
    elif net_gamma > 0:
        base = -min(0.3, net_gamma * 0.5)
    else:
        base = 0.0
    base *= dealer.strength

    if volatility.regime == VolatilityRegime.SUPPRESSED and volatility.breakout_potential > 0.6:
        vol = volatility.breakout_potential * 0.15
    elif volatility.regime == VolatilityRegime.EXTREME:
        vol = -0.2
    else:
        vol = 0.0

    pin = -pinning.overall_strength * 0.15 + pinning.confidence_score * 0.05

    if zones:
        avg_strength = float(np.mean([z.strength for z in zones]))
        avg_probability = float(np.mean([z.probability for z in zones]))
        accel = (avg_strength + avg_probability) / 2 * 0.1
    else:
        accel = 0.0

    if days_to_expiry <= 3:
        time_adj = -0.1
    elif days_to_expiry <= 7:
        time_adj = -0.05
    else:
        time_adj = 0.0

    components = {
        'base': base,
        'volatility': vol,
        'pinning': pin,
        'acceleration': accel,
        'time': time_adj,
    }
    weights = GammaConfig.ADJUSTMENT_WEIGHTS
    total = sum(components[k] * weights[k] for k in components)
    limit = GammaConfig.ADJUSTMENT_LIMIT
    total = float(np.clip(total, -limit, limit))

    reasoning = []
    if base > 0.1:
        reasoning.append("Negative gamma positioning can amplify directional moves")
    elif base < -0.1:
        reasoning.append("Positive gamma positioning may dampen directional moves")
    if vol > 0.1:
        reasoning.append("High volatility suppression with breakout potential")
    if pin < -0.1:
        reasoning.append("Strong pinning forces reduce directional move confidence")
    if accel > 0.05:
        reasoning.append("Strong acceleration zones support directional moves")
    if time_adj < -0.05:
        reasoning.append("Approaching expiration increases pinning effects")

    return GammaConfidenceAdjustment(
        adjustment=total,
        level=_adjustment_level(total),
        components=components,
        reasoning=reasoning,
    )


class GammaExposureEngine:
    """
    Runs the full gamma analysis for one option chain.

    Stateless: one instance can serve any number of instruments and threads.
    """

    def __init__(self, min_usable_strikes: Optional[int] = None):
        self.min_usable_strikes = min_usable_strikes or GammaConfig.MIN_USABLE_STRIKES

    def default_analysis(
        self,
        symbol: str,
        price: float,
        reasons: List[str]
    ) -> GammaExposureAnalysis:
        """Neutral analysis: zero exposure, no flip, LOW pinning"""
        return GammaExposureAnalysis(
            symbol=symbol,
            underlying_price=price,
            net_gamma_exposure=0.0,
            dealer_positioning=neutral_dealer_positioning(),
            flip_analysis=FlipAnalysis(),
            volatility_environment=neutral_volatility_environment(),
            pinning_risk=PinningRisk(),
            detailed_pinning=DetailedPinningRisk(primary_pin=default_pin_level(price)),
            reasons=reasons,
            is_default=True,
        )

    @log_execution_time()
    def analyze(
        self,
        snapshot: Optional[OptionChainSnapshot],
        closes: Optional[Sequence[float]] = None,
        deadline: Optional[float] = None
    ) -> GammaExposureAnalysis:
        """
        Analyze one option chain snapshot.

        Args:
            snapshot: Option chain for the instrument
            closes: Optional daily closes (oldest first) for realized volatility
            deadline: Optional ``time.monotonic()`` cutoff for the flip grid scan
        """
        if snapshot is None:
            return self.default_analysis('UNKNOWN', 0.0, ['No option chain provided'])

        validation = validate_option_chain(snapshot, self.min_usable_strikes)
        if not validation['valid']:
            log_data_quality_issue(
                logger,
                'insufficient_depth',
                f"{snapshot.symbol}: option chain too thin for gamma analysis",
                **validation['stats']
            )
            return self.default_analysis(snapshot.symbol, snapshot.underlying_price, validation['issues'])

        price = snapshot.underlying_price
        net = net_gamma_exposure(snapshot, price)
        dealer = analyze_dealer_positioning(snapshot, net, closes)
        volatility = assess_volatility_environment(snapshot, net, closes)
        flips = find_flip_levels(snapshot, price, deadline=deadline)
        pinning = pinning_risk(snapshot, price)
        detailed = detailed_pinning_risk(snapshot, price)
        zones = acceleration_zones(snapshot, dealer, price)
        adjustment = gamma_confidence_adjustment(
            net, dealer, volatility, detailed, zones, pinning.time_to_expiry
        )

        reasons = list(validation['issues'])
        if flips.primary is None:
            reasons.append('No gamma flip within ±20% of spot')

        logger.debug(
            f"{snapshot.symbol}: net gamma {net:+.4f}, {dealer.position_type.value}, "
            f"pin {pinning.risk_level.value}, {len(zones)} acceleration zones"
        )

        return GammaExposureAnalysis(
            symbol=snapshot.symbol,
            underlying_price=price,
            net_gamma_exposure=net,
            dealer_positioning=dealer,
            flip_analysis=flips,
            volatility_environment=volatility,
            pinning_risk=pinning,
            detailed_pinning=detailed,
            acceleration_zones=zones,
            confidence_adjustment=adjustment,
            reasons=reasons,
        )

    def factor_score(
        self,
        snapshot: Optional[OptionChainSnapshot],
        closes: Optional[Sequence[float]] = None
    ) -> FactorScore:
        return self.analyze(snapshot, closes).to_factor_score()


_gamma_engine: Optional[GammaExposureEngine] = None


def get_gamma_exposure_engine() -> GammaExposureEngine:
    """Shared engine instance"""
    global _gamma_engine
    if _gamma_engine is None:
        _gamma_engine = GammaExposureEngine()
    return _gamma_engine
