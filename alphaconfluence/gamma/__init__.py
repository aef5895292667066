"""
AlphaConfluence Gamma Module - Options Gamma Exposure Analysis

1. Net dealer gamma exposure and flip levels
2. Pinning risk and pin levels
3. Dealer positioning and volatility environment
4. Acceleration zones
5. GammaExposureEngine - full analysis + gamma factor score
"""

from .gex_calculator import (
    FlipAnalysis,
    FlipMethod,
    FlipSignificance,
    GammaFlipLevel,
    Timeframe,
    exposure_profile,
    find_flip_level,
    find_flip_levels,
    net_gamma_exposure,
)

from .pin_risk_analyzer import (
    DetailedPinningRisk,
    PinLevel,
    PinningRisk,
    PinRiskLevel,
    PinType,
    detailed_pinning_risk,
    pin_levels,
    pinning_risk,
)

from .dealer_positioning import (
    DealerPositioning,
    FlowDirection,
    PositionType,
    VolatilityEnvironment,
    VolatilityRegime,
    analyze_dealer_positioning,
    assess_volatility_environment,
)

from .acceleration_zones import (
    AccelerationZone,
    ZoneType,
    acceleration_zones,
)

from .gamma_exposure_engine import (
    GammaConfidenceAdjustment,
    GammaConfidenceLevel,
    GammaExposureAnalysis,
    GammaExposureEngine,
    get_gamma_exposure_engine,
)

__all__ = [
    'FlipAnalysis', 'FlipMethod', 'FlipSignificance', 'GammaFlipLevel', 'Timeframe',
    'exposure_profile', 'find_flip_level', 'find_flip_levels', 'net_gamma_exposure',
    'DetailedPinningRisk', 'PinLevel', 'PinningRisk', 'PinRiskLevel', 'PinType',
    'detailed_pinning_risk', 'pin_levels', 'pinning_risk',
    'DealerPositioning', 'FlowDirection', 'PositionType', 'VolatilityEnvironment',
    'VolatilityRegime', 'analyze_dealer_positioning', 'assess_volatility_environment',
    'AccelerationZone', 'ZoneType', 'acceleration_zones',
    'GammaConfidenceAdjustment', 'GammaConfidenceLevel', 'GammaExposureAnalysis',
    'GammaExposureEngine', 'get_gamma_exposure_engine',
]
