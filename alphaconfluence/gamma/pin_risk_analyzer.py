"""
Pin Risk Analyzer - Open Interest Pinning

Assesses how strongly open interest concentration near spot is likely to
"pin" the underlying into expiration.

Key Features:
- Pinning risk from strike OI concentration and days to expiry
- Detailed pin levels (call / put / dual / gamma pins) with magnetism scores
- Proximity-weighted overall pin strength, persistence and efficiency
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from alphaconfluence.config import GammaConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot
from alphaconfluence.gamma.gex_calculator import gamma_exposure_at_strike

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS AND DATA CLASSES
# ============================================================================

class PinRiskLevel(Enum):
    """Overall pin risk assessment"""
    EXTREME = "EXTREME"      # > 0.8
    HIGH = "HIGH"            # > 0.6
    MODERATE = "MODERATE"    # > 0.4
    LOW = "LOW"


class PinType(Enum):
    CALL_PIN = "CALL_PIN"    # call OI more than double put OI
    PUT_PIN = "PUT_PIN"      # put OI more than double call OI
    DUAL_PIN = "DUAL_PIN"    # call and put OI within 30% of each other
    GAMMA_PIN = "GAMMA_PIN"


def classify_pin_risk(score: float) -> PinRiskLevel:
    if score > 0.8:
        return PinRiskLevel.EXTREME
    elif score > 0.6:
        return PinRiskLevel.HIGH
    elif score > 0.4:
        return PinRiskLevel.MODERATE
    return PinRiskLevel.LOW


@dataclass
class PinningRisk:
    """Strike-concentration pinning risk near spot"""
    primary_pin: Optional[float] = None
    secondary_pins: List[float] = field(default_factory=list)
    pin_strength: float = 0.0
    time_to_expiry: int = GammaConfig.DEFAULT_DAYS_TO_EXPIRY
    concentration: float = 0.0
    probability: float = 0.0
    risk_level: PinRiskLevel = PinRiskLevel.LOW

    def to_dict(self) -> Dict:
        return {
            'primary_pin': self.primary_pin,
            'secondary_pins': list(self.secondary_pins),
            'pin_strength': self.pin_strength,
            'time_to_expiry': self.time_to_expiry,
            'concentration': self.concentration,
            'probability': self.probability,
            'risk_level': self.risk_level.value,
        }


@dataclass
class PinLevel:
    """A strike exerting pull on the underlying"""
    strike: float
    pin_type: PinType
    strength: float
    magnetism: float
    open_interest: int
    volume: int
    gamma_exposure: float
    delta_hedging_pressure: float
    distance_from_price: float
    attraction_radius: float

    def to_dict(self) -> Dict:
        return {
            'strike': self.strike,
            'pin_type': self.pin_type.value,
            'strength': round(self.strength, 3),
            'magnetism': round(self.magnetism, 3),
            'open_interest': self.open_interest,
            'volume': self.volume,
            'gamma_exposure': round(self.gamma_exposure, 6),
            'delta_hedging_pressure': round(self.delta_hedging_pressure, 3),
            'distance_from_price': round(self.distance_from_price, 4),
            'attraction_radius': round(self.attraction_radius, 4),
        }


@dataclass
class DetailedPinningRisk:
    """Pin levels plus overall pin characteristics"""
    primary_pin: PinLevel
    secondary_pins: List[PinLevel] = field(default_factory=list)
    overall_strength: float = 0.0
    persistence: float = 0.0
    efficiency: float = 0.0
    confidence_score: float = 0.0
    risk_level: PinRiskLevel = PinRiskLevel.LOW

    def to_dict(self) -> Dict:
        return {
            'primary_pin': self.primary_pin.to_dict(),
            'secondary_pins': [p.to_dict() for p in self.secondary_pins],
            'overall_strength': round(self.overall_strength, 3),
            'persistence': round(self.persistence, 3),
            'efficiency': round(self.efficiency, 3),
            'confidence_score': round(self.confidence_score, 3),
            'risk_level': self.risk_level.value,
        }


# ============================================================================
# PINNING RISK
# ============================================================================

def pinning_risk(snapshot: OptionChainSnapshot, price: Optional[float] = None) -> PinningRisk:
    """
    Pinning risk from open interest concentration near spot.

    probability = 0.4·time_weight + 0.3·pin_strength + 0.3·concentration
    where time_weight = max(0, 1 - days_to_expiry/30).
    """
    price = snapshot.underlying_price if price is None else price
    oi_by_strike = snapshot.open_interest_by_strike()
    total_oi = sum(oi_by_strike.values())
    tte = snapshot.days_to_nearest_expiry(default=GammaConfig.DEFAULT_DAYS_TO_EXPIRY)

    if total_oi == 0:
        return PinningRisk(time_to_expiry=tte)

    top_strikes = sorted(oi_by_strike.items(), key=lambda kv: kv[1], reverse=True)[:GammaConfig.PIN_TOP_STRIKES]
    nearby = [
        (strike, oi) for strike, oi in top_strikes
        if abs(strike - price) / price < GammaConfig.PIN_NEARBY_PCT
    ]

    pin_strength = max(oi_by_strike.values()) / total_oi
    concentration = sum(oi for _, oi in nearby) / total_oi
    time_weight = max(0.0, 1 - tte / GammaConfig.DEFAULT_DAYS_TO_EXPIRY)
    probability = 0.4 * time_weight + 0.3 * pin_strength + 0.3 * concentration

    return PinningRisk(
        primary_pin=nearby[0][0] if nearby else None,
        secondary_pins=[strike for strike, _ in nearby[1:4]],
        pin_strength=round(pin_strength, 3),
        time_to_expiry=tte,
        concentration=round(concentration, 3),
        probability=round(probability, 3),
        risk_level=classify_pin_risk(probability),
    )


# ============================================================================
# DETAILED PIN LEVELS
# ============================================================================

def _pin_type(call_oi: int, put_oi: int) -> PinType:
    if call_oi > put_oi * 2:
        return PinType.CALL_PIN
    if put_oi > call_oi * 2:
        return PinType.PUT_PIN
    larger = max(call_oi, put_oi)
    if larger > 0 and abs(call_oi - put_oi) / larger < 0.3:
        return PinType.DUAL_PIN
    return PinType.GAMMA_PIN


def _pin_level(snapshot: OptionChainSnapshot, strike: float, price: float) -> PinLevel:
    calls, puts = snapshot.contracts_at_strike(strike)
    call_oi = sum(c.open_interest for c in calls)
    put_oi = sum(p.open_interest for p in puts)
    open_interest = call_oi + put_oi
    volume = sum(c.volume for c in calls) + sum(p.volume for p in puts)
    gex = gamma_exposure_at_strike(snapshot, strike)
    distance = abs(strike - price) / price

    raw_strength = (
        math.log(open_interest + 1) / 15
        + math.log(volume + 1) / 10
        + abs(gex) * 10
    )
    strength = min(1.0, raw_strength * math.exp(-distance * 10))

    magnetism = (
        math.exp(-distance * 10)
        + min(1.0, open_interest / 50000)
        + min(1.0, abs(gex) * 20)
    ) / 3

    total_delta = sum(abs(c.delta) * c.open_interest for c in calls + puts)
    hedging = min(1.0, total_delta / 100000 * math.exp(-abs(strike / price - 1) * 5))

    return PinLevel(
        strike=strike,
        pin_type=_pin_type(call_oi, put_oi),
        strength=strength,
        magnetism=magnetism,
        open_interest=open_interest,
        volume=volume,
        gamma_exposure=gex,
        delta_hedging_pressure=hedging,
        distance_from_price=distance,
        attraction_radius=0.01 * (1 + strength * 2) * (1 + math.log(open_interest + 1) / 15),
    )


def pin_levels(snapshot: OptionChainSnapshot, price: Optional[float] = None) -> List[PinLevel]:
    """Strikes within 15% of spot with pin strength above 0.2, strongest first"""
    price = snapshot.underlying_price if price is None else price
    levels = []
    for strike in snapshot.strikes():
        if abs(strike - price) / price > GammaConfig.PIN_LEVEL_RANGE_PCT:
            continue
        level = _pin_level(snapshot, strike, price)
        if level.strength > GammaConfig.PIN_MIN_STRENGTH:
            levels.append(level)

    levels.sort(key=lambda p: p.strength, reverse=True)
    return levels


def default_pin_level(price: float) -> PinLevel:
    return PinLevel(
        strike=price,
        pin_type=PinType.GAMMA_PIN,
        strength=0.0,
        magnetism=0.0,
        open_interest=0,
        volume=0,
        gamma_exposure=0.0,
        delta_hedging_pressure=0.0,
        distance_from_price=0.0,
        attraction_radius=0.0,
    )


def detailed_pinning_risk(snapshot: OptionChainSnapshot, price: Optional[float] = None) -> DetailedPinningRisk:
    """Primary / secondary pins with overall strength, persistence and efficiency"""
    price = snapshot.underlying_price if price is None else price
    levels = pin_levels(snapshot, price)
    tte = snapshot.days_to_nearest_expiry(default=GammaConfig.DEFAULT_DAYS_TO_EXPIRY)

    if not levels:
        return DetailedPinningRisk(primary_pin=default_pin_level(price))

    strengths = np.array([p.strength for p in levels])
    weights = strengths * np.exp(-5 * np.array([p.distance_from_price for p in levels]))
    overall_strength = float(np.sum(strengths * weights) / np.sum(weights)) if np.sum(weights) > 0 else 0.0

    avg_oi = float(np.mean([p.open_interest for p in levels]))
    time_factor = float(np.clip((30 - tte) / 25, 0.2, 1.0))
    persistence = (time_factor + min(1.0, avg_oi / 20000)) / 2

    efficiency = min(1.0, float(np.mean([abs(p.gamma_exposure) for p in levels])) * 50)

    total_volume = sum(p.volume for p in levels)
    confidence_score = (levels[0].strength + min(1.0, total_volume / 100000) + min(1.0, len(levels) / 5)) / 3

    return DetailedPinningRisk(
        primary_pin=levels[0],
        secondary_pins=levels[1:4],
        overall_strength=overall_strength,
        persistence=persistence,
        efficiency=efficiency,
        confidence_score=confidence_score,
        risk_level=classify_pin_risk((overall_strength + persistence) / 2),
    )
