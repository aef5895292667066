"""
Net Gamma Exposure & Flip Levels
================================

Dealer gamma exposure from an option chain snapshot, evaluated as a continuous
function of the underlying price:

    exposure(P) = Σ_puts  γ·OI·w(K/P)·ln(OI+1)
                - Σ_calls γ·OI·w(K/P)·ln(OI+1)      all divided by P·1e6

    w(m) = exp(-2·|m-1|)   (near-the-money strikes dominate)

Dealers are assumed short calls and long puts. The flip level is where this
function changes sign; it is located by scanning a price grid around spot and
linearly interpolating between the two bracketing samples.

Three flip strategies are reconciled by proximity to spot:
- ZERO_CROSSING: first sign change on the ±20% grid
- MAX_RATE_OF_CHANGE: steepest point of the exposure curve within ±10%
- OI_WEIGHTED: strike (within 10%) with a sign change across ±1%, scored by OI
"""

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from alphaconfluence.config import GammaConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot

logger = logging.getLogger(__name__)

ExposureFn = Callable[[float], float]


class FlipSignificance(Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


class Timeframe(Enum):
    """How soon a level is likely to come into play (by distance from spot)"""
    IMMEDIATE = "IMMEDIATE"      # < 2%
    SHORT_TERM = "SHORT_TERM"    # < 5%
    MEDIUM_TERM = "MEDIUM_TERM"


class FlipMethod(Enum):
    ZERO_CROSSING = "ZERO_CROSSING"
    MAX_RATE_OF_CHANGE = "MAX_RATE_OF_CHANGE"
    OI_WEIGHTED = "OI_WEIGHTED"


@dataclass
class GammaFlipLevel:
    """Price at which net dealer gamma changes sign"""
    level: float
    confidence: float
    gamma_change: float
    proximity: float                # |level - spot| / spot
    significance: FlipSignificance
    timeframe: Timeframe
    trigger_volume: int
    method: FlipMethod = FlipMethod.ZERO_CROSSING

    def to_dict(self) -> Dict[str, Any]:
        return {
            'level': self.level,
            'confidence': round(self.confidence, 3),
            'gamma_change': round(self.gamma_change, 6),
            'proximity': round(self.proximity, 4),
            'significance': self.significance.value,
            'timeframe': self.timeframe.value,
            'trigger_volume': self.trigger_volume,
            'method': self.method.value,
        }


@dataclass
class FlipAnalysis:
    """All flip candidates, nearest to spot first"""
    primary: Optional[GammaFlipLevel] = None
    secondary: List[GammaFlipLevel] = field(default_factory=list)
    all_levels: List[GammaFlipLevel] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'primary': self.primary.to_dict() if self.primary else None,
            'secondary': [f.to_dict() for f in self.secondary],
            'all_levels': [f.to_dict() for f in self.all_levels],
        }


# ============================================================================
# EXPOSURE FUNCTION
# ============================================================================

def proximity_weight(moneyness):
    """exp(-2·|moneyness - 1|); works on scalars and numpy arrays"""
    return np.exp(-GammaConfig.PROXIMITY_DECAY * np.abs(np.asarray(moneyness, dtype=float) - 1.0))


def _exposure_from_arrays(arrays: Dict[str, np.ndarray], price: float) -> float:
    if price <= 0 or arrays['strike'].size == 0:
        return 0.0

    oi = arrays['open_interest']
    weights = proximity_weight(arrays['strike'] / price)
    total = float(np.sum(arrays['sign'] * arrays['gamma'] * oi * weights * np.log(oi + 1.0)))

    return round(total / (price * GammaConfig.NORMALIZATION_SCALE), 6)


def net_gamma_exposure(snapshot: OptionChainSnapshot, price: Optional[float] = None) -> float:
    """
    Normalized net dealer gamma exposure at ``price`` (spot by default).

    Negative: dealers short gamma (moves amplified).
    Positive: dealers long gamma (moves dampened).
    """
    price = snapshot.underlying_price if price is None else price
    return _exposure_from_arrays(snapshot.gamma_arrays(), price)


def make_exposure_fn(snapshot: OptionChainSnapshot) -> ExposureFn:
    """Exposure as a function of price, with the chain columns extracted once"""
    arrays = snapshot.gamma_arrays()

    def exposure(price: float) -> float:
        return _exposure_from_arrays(arrays, price)

    return exposure


def gamma_exposure_at_strike(snapshot: OptionChainSnapshot, strike: float) -> float:
    """Raw (unweighted) dealer gamma listed at one strike"""
    calls, puts = snapshot.contracts_at_strike(strike)
    call_gamma = -sum(c.gamma * c.open_interest for c in calls)
    put_gamma = sum(p.gamma * p.open_interest for p in puts)
    return call_gamma + put_gamma


def price_grid(price: float, range_pct: float, step_pct: float) -> np.ndarray:
    """Evenly spaced prices from price·(1-range) to price·(1+range)"""
    steps = int(round(2 * range_pct / step_pct))
    return np.linspace(price - price * range_pct, price + price * range_pct, steps + 1)


def exposure_profile(
    snapshot: OptionChainSnapshot,
    price: Optional[float] = None,
    range_pct: Optional[float] = None,
    step_pct: Optional[float] = None
) -> pd.DataFrame:
    """Net exposure sampled over the flip grid (columns: price, net_gamma)"""
    price = snapshot.underlying_price if price is None else price
    grid = price_grid(
        price,
        range_pct or GammaConfig.FLIP_RANGE_PCT,
        step_pct or GammaConfig.FLIP_GRID_STEP_PCT,
    )
    exposure = make_exposure_fn(snapshot)
    return pd.DataFrame({'price': grid, 'net_gamma': [exposure(p) for p in grid]})


def interpolate_flip(price1: float, price2: float, gamma1: float, gamma2: float) -> float:
    """Linear zero crossing between two bracketing samples"""
    ratio = -gamma1 / (gamma2 - gamma1)
    return price1 + ratio * (price2 - price1)


# ============================================================================
# FLIP LEVEL CONSTRUCTION
# ============================================================================

def _build_flip(
    level: float,
    spot: float,
    gamma_change: float,
    confidence: float,
    method: FlipMethod,
    snapshot: Optional[OptionChainSnapshot]
) -> GammaFlipLevel:
    proximity = abs(level - spot) / spot
    trigger_volume = 0
    if snapshot is not None:
        nearby_oi = snapshot.open_interest_near(level, GammaConfig.TRIGGER_VOLUME_BAND_PCT)
        trigger_volume = int(round(nearby_oi * 0.1))

    return GammaFlipLevel(
        level=round(level, 2),
        confidence=float(np.clip(confidence, 0.0, 1.0)),
        gamma_change=gamma_change,
        proximity=proximity,
        significance=FlipSignificance(GammaConfig.get_significance(gamma_change)),
        timeframe=Timeframe(GammaConfig.get_timeframe(proximity)),
        trigger_volume=trigger_volume,
        method=method,
    )


def _resolve(snapshot: Optional[OptionChainSnapshot], price: Optional[float],
             exposure_fn: Optional[ExposureFn]):
    if price is None:
        if snapshot is None:
            raise ValueError("price is required when no snapshot is given")
        price = snapshot.underlying_price
    if exposure_fn is None:
        if snapshot is None:
            raise ValueError("exposure_fn is required when no snapshot is given")
        exposure_fn = make_exposure_fn(snapshot)
    return price, exposure_fn


def find_flip_level(
    snapshot: Optional[OptionChainSnapshot],
    price: Optional[float] = None,
    exposure_fn: Optional[ExposureFn] = None,
    range_pct: Optional[float] = None,
    step_pct: Optional[float] = None,
    deadline: Optional[float] = None
) -> Optional[GammaFlipLevel]:
    """
    First zero crossing of net exposure on the grid around spot.

    Args:
        snapshot: Option chain (may be None when ``exposure_fn`` is given)
        price: Spot price, defaults to the snapshot's underlying price
        exposure_fn: Price -> exposure override (synthetic curves, tests)
        range_pct: Half-width of the grid as a fraction of spot (default 20%)
        step_pct: Grid spacing as a fraction of spot (default 0.5%)
        deadline: ``time.monotonic()`` value after which the scan gives up

    Returns:
        GammaFlipLevel, or None if the exposure keeps one sign over the grid
    """
    price, exposure_fn = _resolve(snapshot, price, exposure_fn)
    if price <= 0:
        return None

    grid = price_grid(
        price,
        range_pct or GammaConfig.FLIP_RANGE_PCT,
        step_pct or GammaConfig.FLIP_GRID_STEP_PCT,
    )

    last_price, last_gamma = None, None   # last non-zero sample
    prev_price, prev_gamma = None, None

    for grid_price in grid:
        if deadline is not None and time.monotonic() > deadline:
            logger.warning(f"Flip scan deadline reached at {grid_price:.2f}; no flip returned")
            return None

        gamma = exposure_fn(float(grid_price))

        if gamma != 0 and last_gamma is not None and (gamma > 0) != (last_gamma > 0):
            if prev_gamma == 0:
                # Curve touched zero exactly on the previous grid point
                level = prev_price
                gamma_change = abs(gamma - last_gamma)
            else:
                level = interpolate_flip(last_price, float(grid_price), last_gamma, gamma)
                gamma_change = abs(last_gamma - gamma)

            total_volume = snapshot.total_volume() if snapshot is not None else 0
            confidence = min(0.95, min(0.9, gamma_change * 10) + min(0.1, total_volume / 100000))
            return _build_flip(level, price, gamma_change, confidence, FlipMethod.ZERO_CROSSING, snapshot)

        if gamma != 0:
            last_price, last_gamma = float(grid_price), gamma
        prev_price, prev_gamma = float(grid_price), gamma

    return None


def find_max_rate_of_change_level(
    snapshot: Optional[OptionChainSnapshot],
    price: Optional[float] = None,
    exposure_fn: Optional[ExposureFn] = None
) -> Optional[GammaFlipLevel]:
    """Price (within ±10%) where the exposure curve is steepest"""
    price, exposure_fn = _resolve(snapshot, price, exposure_fn)
    step = price * GammaConfig.FLIP_GRID_STEP_PCT

    max_rate = 0.0
    max_level = price
    for grid_price in price_grid(price, GammaConfig.ROC_RANGE_PCT, GammaConfig.FLIP_GRID_STEP_PCT):
        below = exposure_fn(float(grid_price) - step)
        above = exposure_fn(float(grid_price) + step)
        rate = abs(above - below) / (2 * step)
        if rate > max_rate:
            max_rate = rate
            max_level = float(grid_price)

    if max_rate <= GammaConfig.ROC_MIN_RATE:
        return None

    return _build_flip(
        max_level, price, max_rate, min(0.9, max_rate * 1000),
        FlipMethod.MAX_RATE_OF_CHANGE, snapshot
    )


def find_oi_weighted_flip(
    snapshot: Optional[OptionChainSnapshot],
    price: Optional[float] = None,
    exposure_fn: Optional[ExposureFn] = None
) -> Optional[GammaFlipLevel]:
    """Listed strike where exposure flips across ±1%, favouring heavy open interest"""
    if snapshot is None:
        return None
    price, exposure_fn = _resolve(snapshot, price, exposure_fn)

    best_strike, best_score, best_change = None, 0.0, 0.0
    for strike in snapshot.strikes():
        if abs(strike - price) / price > GammaConfig.OI_WEIGHTED_RANGE_PCT:
            continue

        above = exposure_fn(strike * 1.01)
        below = exposure_fn(strike * 0.99)
        if (below > 0 and above < 0) or (below < 0 and above > 0):
            change = abs(above - below)
            score = change * math.log(snapshot.open_interest_at_strike(strike) + 1)
            if score > best_score:
                best_strike, best_score, best_change = strike, score, change

    if best_strike is None:
        return None

    return _build_flip(
        best_strike, price, best_change, min(0.95, best_score / 1000),
        FlipMethod.OI_WEIGHTED, snapshot
    )


def find_flip_levels(
    snapshot: OptionChainSnapshot,
    price: Optional[float] = None,
    deadline: Optional[float] = None
) -> FlipAnalysis:
    """
    Run all flip strategies and reconcile them by proximity to spot.

    Candidates within 0.1% of each other are merged (higher confidence kept).
    The nearest becomes primary; up to three others are secondary.
    """
    price = snapshot.underlying_price if price is None else price
    exposure_fn = make_exposure_fn(snapshot)

    candidates = [
        find_flip_level(snapshot, price, exposure_fn, deadline=deadline),
        find_max_rate_of_change_level(snapshot, price, exposure_fn),
        find_oi_weighted_flip(snapshot, price, exposure_fn),
    ]
    candidates = [c for c in candidates if c is not None]

    kept: List[GammaFlipLevel] = []
    for candidate in sorted(candidates, key=lambda f: f.confidence, reverse=True):
        if all(abs(candidate.level - k.level) / k.level > 0.001 for k in kept):
            kept.append(candidate)

    kept.sort(key=lambda f: f.proximity)
    return FlipAnalysis(
        primary=kept[0] if kept else None,
        secondary=kept[1:1 + GammaConfig.MAX_SECONDARY_FLIPS],
        all_levels=kept,
    )
