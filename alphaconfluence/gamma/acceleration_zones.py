"""
Acceleration Zones

Strikes near spot where dealer hedging can accelerate a move: short-gamma
dealers buying into rallies through call strikes above spot, and selling into
declines through put strikes below spot.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from alphaconfluence.config import GammaConfig
from alphaconfluence.data.option_chain import OptionChainSnapshot
from alphaconfluence.gamma.dealer_positioning import DealerPositioning
from alphaconfluence.gamma.gex_calculator import Timeframe

logger = logging.getLogger(__name__)


class ZoneType(Enum):
    GAMMA_SQUEEZE_UP = "GAMMA_SQUEEZE_UP"
    GAMMA_SQUEEZE_DOWN = "GAMMA_SQUEEZE_DOWN"


@dataclass
class AccelerationZone:
    zone_type: ZoneType
    trigger_level: float
    strength: float
    expected_move: float          # fraction of spot
    probability: float
    volume_requirement: int
    timeframe: Timeframe

    def to_dict(self) -> Dict:
        return {
            'zone_type': self.zone_type.value,
            'trigger_level': self.trigger_level,
            'strength': round(self.strength, 3),
            'expected_move': round(self.expected_move, 4),
            'probability': round(self.probability, 3),
            'volume_requirement': self.volume_requirement,
            'timeframe': self.timeframe.value,
        }


def _zone(
    zone_type: ZoneType,
    strike: float,
    gamma: float,
    open_interest: int,
    price: float,
    dealer: DealerPositioning
) -> Optional[AccelerationZone]:
    distance = abs(strike - price) / price
    strength = min(
        1.0,
        abs(gamma) * open_interest / 1000 * math.exp(-distance * 5) * dealer.strength / 10
    )
    if strength <= GammaConfig.ZONE_MIN_STRENGTH:
        return None

    return AccelerationZone(
        zone_type=zone_type,
        trigger_level=strike,
        strength=strength,
        expected_move=distance * (1 + strength),
        probability=min(1.0, strength * (1 - distance) * dealer.hedging_pressure),
        volume_requirement=int(round(open_interest * 0.1 * (1 + distance))),
        timeframe=Timeframe(GammaConfig.get_timeframe(distance)),
    )


def acceleration_zones(
    snapshot: OptionChainSnapshot,
    dealer: DealerPositioning,
    price: Optional[float] = None
) -> List[AccelerationZone]:
    """
    Up to five strongest acceleration zones within ±10% of spot.

    Calls strictly between spot and +10% give squeeze-up zones, puts strictly
    between -10% and spot give squeeze-down zones.
    """
    price = snapshot.underlying_price if price is None else price
    upper = price * (1 + GammaConfig.ZONE_RANGE_PCT)
    lower = price * (1 - GammaConfig.ZONE_RANGE_PCT)

    zones: List[AccelerationZone] = []
    for call in snapshot.calls:
        if price < call.strike < upper:
            zone = _zone(ZoneType.GAMMA_SQUEEZE_UP, call.strike, call.gamma, call.open_interest, price, dealer)
            if zone:
                zones.append(zone)

    for put in snapshot.puts:
        if lower < put.strike < price:
            zone = _zone(ZoneType.GAMMA_SQUEEZE_DOWN, put.strike, put.gamma, put.open_interest, price, dealer)
            if zone:
                zones.append(zone)

    zones.sort(key=lambda z: z.strength, reverse=True)
    return zones[:GammaConfig.ZONE_MAX_COUNT]
