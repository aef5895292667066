"""
Dealer Positioning & Volatility Environment

Derives how option dealers are positioned from net gamma exposure and the
chain's call/put activity, and how that positioning shapes volatility:
- LONG_GAMMA dealers sell rallies / buy dips (volatility suppressed)
- SHORT_GAMMA dealers chase price (moves amplified)

Realized volatility comes from an optional close-price history; without one
the 20% default stands in for both realized and implied volatility.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional, Sequence

import numpy as np

from alphaconfluence.config import GammaConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252
REALIZED_VOL_LOOKBACK = 30
HEDGING_VOL_LOOKBACK = 5
VOL_OF_VOL_WINDOW = 10


class PositionType(Enum):
    LONG_GAMMA = "LONG_GAMMA"
    SHORT_GAMMA = "SHORT_GAMMA"
    NEUTRAL = "NEUTRAL"


class FlowDirection(Enum):
    BUYING = "BUYING"
    SELLING = "SELLING"
    NEUTRAL = "NEUTRAL"


class VolatilityRegime(Enum):
    SUPPRESSED = "SUPPRESSED"
    NORMAL = "NORMAL"
    ELEVATED = "ELEVATED"
    EXTREME = "EXTREME"


@dataclass
class DealerPositioning:
    """How dealers are positioned in gamma"""
    net_gamma: float
    gamma_percentile: float          # 0-100
    position_type: PositionType
    strength: float                  # 0-1
    flow_direction: FlowDirection
    concentration_risk: float        # 0-1, share of |γ·OI| at the busiest strike
    hedging_pressure: float          # 0-1

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['position_type'] = self.position_type.value
        data['flow_direction'] = self.flow_direction.value
        return data


@dataclass
class VolatilityEnvironment:
    """Volatility regime as shaped by gamma positioning"""
    regime: VolatilityRegime
    suppression_level: float
    expected_volatility: float
    realized_volatility: float
    vol_of_vol: float
    gamma_contribution: float
    breakout_potential: float

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['regime'] = self.regime.value
        return data


def neutral_dealer_positioning() -> DealerPositioning:
    return DealerPositioning(
        net_gamma=0.0,
        gamma_percentile=50.0,
        position_type=PositionType.NEUTRAL,
        strength=0.0,
        flow_direction=FlowDirection.NEUTRAL,
        concentration_risk=0.0,
        hedging_pressure=0.0,
    )


def neutral_volatility_environment() -> VolatilityEnvironment:
    return VolatilityEnvironment(
        regime=VolatilityRegime.NORMAL,
        suppression_level=0.0,
        expected_volatility=GammaConfig.DEFAULT_VOLATILITY,
        realized_volatility=GammaConfig.DEFAULT_VOLATILITY,
        vol_of_vol=0.1,
        gamma_contribution=0.0,
        breakout_potential=0.0,
    )


# ============================================================================
# VOLATILITY HELPERS
# ============================================================================

def realized_volatility(closes: Optional[Sequence[float]], periods: int) -> float:
    """Annualized close-to-close volatility over the last ``periods`` returns"""
    if closes is None:
        return GammaConfig.DEFAULT_VOLATILITY

    prices = np.asarray(closes, dtype=float)
    if prices.size < periods + 1 or np.any(prices <= 0):
        return GammaConfig.DEFAULT_VOLATILITY

    returns = np.diff(np.log(prices[-(periods + 1):]))
    return float(np.std(returns) * np.sqrt(TRADING_DAYS_PER_YEAR))


def expected_volatility(snapshot: OptionChainSnapshot) -> float:
    """Volume-weighted implied volatility of the chain"""
    weighted_iv = 0.0
    total_volume = 0
    for contract in snapshot.contracts():
        if contract.volume > 0 and contract.implied_volatility > 0:
            weighted_iv += contract.implied_volatility * contract.volume
            total_volume += contract.volume

    return weighted_iv / total_volume if total_volume > 0 else GammaConfig.DEFAULT_VOLATILITY


def volatility_of_volatility(closes: Optional[Sequence[float]]) -> float:
    if closes is None:
        return 0.1

    prices = np.asarray(closes, dtype=float)
    vols = [
        realized_volatility(prices[i - VOL_OF_VOL_WINDOW:i], VOL_OF_VOL_WINDOW - 1)
        for i in range(VOL_OF_VOL_WINDOW, prices.size)
    ]
    if len(vols) < 2:
        return 0.1
    return float(np.std(vols))


# ============================================================================
# DEALER POSITIONING
# ============================================================================

def _flow_direction(snapshot: OptionChainSnapshot) -> FlowDirection:
    call_volume = sum(c.volume for c in snapshot.calls)
    put_volume = sum(p.volume for p in snapshot.puts)
    ratio = call_volume / (put_volume or 1)

    if ratio > 1.2:
        return FlowDirection.BUYING
    elif ratio < 0.8:
        return FlowDirection.SELLING
    return FlowDirection.NEUTRAL


def _concentration_risk(snapshot: OptionChainSnapshot) -> float:
    gamma_by_strike: Dict[float, float] = {}
    for contract in snapshot.contracts():
        exposure = abs(contract.gamma * contract.open_interest)
        gamma_by_strike[contract.strike] = gamma_by_strike.get(contract.strike, 0.0) + exposure

    total = sum(gamma_by_strike.values())
    if total == 0:
        return 0.0
    return max(gamma_by_strike.values()) / total


def analyze_dealer_positioning(
    snapshot: OptionChainSnapshot,
    net_gamma: float,
    closes: Optional[Sequence[float]] = None
) -> DealerPositioning:
    """
    Classify dealer gamma positioning.

    Args:
        snapshot: Current option chain
        net_gamma: Normalized net exposure at spot
        closes: Optional daily closes, oldest first, for hedging pressure
    """
    threshold = GammaConfig.POSITIONING_THRESHOLD
    if net_gamma > threshold:
        position_type = PositionType.LONG_GAMMA
    elif net_gamma < -threshold:
        position_type = PositionType.SHORT_GAMMA
    else:
        position_type = PositionType.NEUTRAL

    strength = min(1.0, abs(net_gamma) / GammaConfig.POSITIONING_STRENGTH_SCALE)

    recent_vol = realized_volatility(closes, HEDGING_VOL_LOOKBACK)
    implied_vol = expected_volatility(snapshot)
    vol_ratio = recent_vol / (implied_vol or GammaConfig.DEFAULT_VOLATILITY)
    hedging_pressure = float(np.clip((vol_ratio - 0.8) / 0.4, 0.0, 1.0))

    return DealerPositioning(
        net_gamma=net_gamma,
        gamma_percentile=float(np.clip((net_gamma + 1) / 2 * 100, 0, 100)),
        position_type=position_type,
        strength=round(strength, 3),
        flow_direction=_flow_direction(snapshot),
        concentration_risk=round(_concentration_risk(snapshot), 3),
        hedging_pressure=round(hedging_pressure, 3),
    )


# ============================================================================
# VOLATILITY ENVIRONMENT
# ============================================================================

def _suppression_level(net_gamma: float, realized: float, expected: float) -> float:
    vol_ratio = realized / (expected or GammaConfig.DEFAULT_VOLATILITY)
    gamma_effect = abs(net_gamma) * 0.5

    if net_gamma > 0 and vol_ratio < 1:
        return min(1.0, (1 - vol_ratio) + gamma_effect)
    return max(0.0, gamma_effect - 0.2)


def _breakout_potential(suppression: float, realized: float, expected: float, net_gamma: float) -> float:
    suppression_part = suppression * 0.6
    gamma_part = abs(net_gamma) * 0.4 if net_gamma < 0 else 0.0
    vol_gap = max(0.0, expected - realized) / expected * 0.3 if expected > 0 else 0.0
    return min(1.0, suppression_part + gamma_part + vol_gap)


def assess_volatility_environment(
    snapshot: OptionChainSnapshot,
    net_gamma: float,
    closes: Optional[Sequence[float]] = None
) -> VolatilityEnvironment:
    """Volatility regime, suppression and breakout potential"""
    realized = realized_volatility(closes, REALIZED_VOL_LOOKBACK)
    expected = expected_volatility(snapshot)
    suppression = _suppression_level(net_gamma, realized, expected)

    if suppression > 0.7:
        regime = VolatilityRegime.SUPPRESSED
    elif realized > expected * 1.5:
        regime = VolatilityRegime.EXTREME
    elif realized > expected * 1.2:
        regime = VolatilityRegime.ELEVATED
    else:
        regime = VolatilityRegime.NORMAL

    return VolatilityEnvironment(
        regime=regime,
        suppression_level=round(suppression, 3),
        expected_volatility=round(expected, 4),
        realized_volatility=round(realized, 4),
        vol_of_vol=round(volatility_of_volatility(closes), 4),
        gamma_contribution=round(min(1.0, abs(net_gamma) * 2), 3),
        breakout_potential=round(_breakout_potential(suppression, realized, expected, net_gamma), 3),
    )
