"""
config.py - Centralized Configuration Module
=============================================

All tunable constants for the confidence pipeline and the gamma exposure
calculator live here. Values are read from the environment (optionally via a
``.env`` file next to the package) with hard defaults.

Usage:
    from alphaconfluence.config import FactorWeightConfig, GammaConfig

    weights = FactorWeightConfig.get_weights()
    grid_step = GammaConfig.FLIP_GRID_STEP_PCT

Author: AlphaConfluence
"""

import os
from pathlib import Path
from typing import Dict

# Load environment variables from .env file BEFORE any os.getenv() calls
from dotenv import load_dotenv
env_path = Path(__file__).parent / '.env'
load_dotenv(env_path)


# ============================================================================
# Environment Variable Helpers
# ============================================================================

def env_float(key: str, default: float) -> float:
    """Get float from environment variable with default"""
    try:
        return float(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def env_int(key: str, default: int) -> int:
    """Get int from environment variable with default"""
    try:
        return int(os.getenv(key, default))
    except (ValueError, TypeError):
        return default


def env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable with default"""
    val = os.getenv(key, str(default)).lower()
    return val in ('true', '1', 'yes', 'on')


# ============================================================================
# Factor Weights
# ============================================================================

class FactorWeightConfig:
    """Production weight vector for the six confidence factors"""

    TREND: float = env_float('WEIGHT_TREND', 0.25)
    MOMENTUM: float = env_float('WEIGHT_MOMENTUM', 0.20)
    VOLUME: float = env_float('WEIGHT_VOLUME', 0.20)
    RIBBON: float = env_float('WEIGHT_RIBBON', 0.15)
    FIBONACCI: float = env_float('WEIGHT_FIBONACCI', 0.10)
    GAMMA: float = env_float('WEIGHT_GAMMA', 0.10)

    # Fallback when the environment weights do not form a valid vector
    DEFAULT_WEIGHTS: Dict[str, float] = {
        'trend': 0.25,
        'momentum': 0.20,
        'volume': 0.20,
        'ribbon': 0.15,
        'fibonacci': 0.10,
        'gamma': 0.10,
    }

    # Allowed deviation of the weight sum from 1.0
    SUM_TOLERANCE: float = 1e-3

    @classmethod
    def get_weights(cls) -> Dict[str, float]:
        """Weight map keyed by factor name"""
        return {
            'trend': cls.TREND,
            'momentum': cls.MOMENTUM,
            'volume': cls.VOLUME,
            'ribbon': cls.RIBBON,
            'fibonacci': cls.FIBONACCI,
            'gamma': cls.GAMMA,
        }


# ============================================================================
# Factor Normalization
# ============================================================================

class NormalizationConfig:
    """Outlier clipping and bounds for per-factor confidences"""

    MIN_FACTOR_CONFIDENCE: float = env_float('MIN_FACTOR_CONFIDENCE', 0.1)
    MAX_FACTOR_CONFIDENCE: float = env_float('MAX_FACTOR_CONFIDENCE', 1.0)
    OUTLIER_THRESHOLD: float = env_float('FACTOR_OUTLIER_THRESHOLD', 2.0)  # std devs

    # Neutral values used when a factor provider fails
    DEFAULT_FACTOR_CONFIDENCE: float = 0.3
    DEFAULT_FACTOR_STRENGTH: float = 0.3
    DEFAULT_FACTOR_DIRECTION: float = 0.5


# ============================================================================
# Conviction & Signal Quality
# ============================================================================

class ConvictionConfig:
    """Conviction scoring thresholds"""

    VERY_HIGH: float = 0.85
    HIGH: float = 0.70
    MODERATE: float = 0.55
    LOW: float = 0.40
    VERY_LOW: float = 0.25

    CONSISTENCY_BONUS: float = env_float('CONVICTION_CONSISTENCY_BONUS', 0.2)
    POWER: float = env_float('CONVICTION_POWER', 1.1)

    # Signal quality blend and tiers
    QUALITY_CONFIDENCE_WEIGHT: float = 0.4
    QUALITY_CONVICTION_WEIGHT: float = 0.4
    QUALITY_STABILITY_WEIGHT: float = 0.2
    QUALITY_LEVELS: Dict[str, float] = {
        'EXCELLENT': 0.80,
        'GOOD': 0.65,
        'FAIR': 0.50,
        'POOR': 0.35,
    }

    @classmethod
    def get_level(cls, score: float) -> str:
        """Map a conviction score to its level name"""
        if score >= cls.VERY_HIGH:
            return 'VERY_HIGH'
        elif score >= cls.HIGH:
            return 'HIGH'
        elif score >= cls.MODERATE:
            return 'MODERATE'
        elif score >= cls.LOW:
            return 'LOW'
        else:
            return 'VERY_LOW'


# ============================================================================
# Cross-Instrument Normalization
# ============================================================================

class CrossInstrumentConfig:
    """Parameters for comparing confidences across a watch-list"""

    GLOBAL_MEAN: float = env_float('CROSS_GLOBAL_MEAN', 0.6)
    ADAPTIVE_WINDOW: int = env_int('CROSS_ADAPTIVE_WINDOW', 50)
    ADAPTIVE_BLEND: float = 0.7  # weight of the recent window mean
    MIN_STD_DEV: float = env_float('CROSS_MIN_STD_DEV', 0.05)
    OUTLIER_THRESHOLD: float = env_float('CROSS_OUTLIER_THRESHOLD', 2.5)
    OUTPUT_FLOOR: float = 0.1
    OUTPUT_CEILING: float = 0.9

    AGGREGATE_EXPONENT: float = 1.5
    CONSENSUS_VARIANCE_SCALE: float = 4.0

    HIGH_CONFIDENCE: float = 0.7
    MEDIUM_CONFIDENCE: float = 0.5
    TOP_INSTRUMENTS: int = env_int('CROSS_TOP_INSTRUMENTS', 5)

    MULTI_CONSENSUS: float = 0.7
    MULTI_AGGREGATE: float = 0.7
    SELECTIVE_CONSENSUS: float = 0.5
    SINGLE_MAX_MEDIUM: int = 2


# ============================================================================
# Instrument History
# ============================================================================

class HistoryConfig:
    """Bounded per-instrument confidence history"""

    MAX_HISTORY_LENGTH: int = env_int('CONFIDENCE_HISTORY_LENGTH', 100)
    TREND_WINDOW: int = 5
    TREND_THRESHOLD: float = 0.05
    MIN_RELIABILITY_SAMPLES: int = 10
    DEFAULT_RELIABILITY: float = 0.5
    RELIABILITY_FLOOR: float = 0.1
    RELIABILITY_CEILING: float = 0.9


# ============================================================================
# Confidence Adjustment Chain
# ============================================================================

class AdjustmentConfig:
    """Multipliers and additive terms applied after aggregation"""

    FIBONACCI_ZONE_MULTIPLIERS: Dict[str, float] = {
        'COMPRESSION': 1.2,
        'MID_EXPANSION': 1.0,
        'FULL_EXPANSION': 0.9,
        'OVER_EXTENSION': 0.7,
        'EXHAUSTION': 0.3,
    }

    # Normalized net gamma exposure thresholds
    GAMMA_HIGH_THRESHOLD: float = env_float('GAMMA_ADJ_HIGH_THRESHOLD', 0.5)
    GAMMA_MODERATE_THRESHOLD: float = env_float('GAMMA_ADJ_MODERATE_THRESHOLD', 0.1)
    GAMMA_EXPOSURE_MULTIPLIERS: Dict[str, float] = {
        'HIGH_NEGATIVE': 1.2,
        'MODERATE_NEGATIVE': 1.1,
        'NEUTRAL': 1.0,
        'MODERATE_POSITIVE': 0.9,
        'HIGH_POSITIVE': 0.8,
    }

    CONFLUENCE_HIGH: float = 0.7
    CONFLUENCE_LOW: float = 0.4
    CONFLUENCE_BOOST: float = 1.1
    CONFLUENCE_PENALTY: float = 0.9

    RELIABILITY_SCALE: float = 0.1
    TREND_ADJUSTMENT: float = 0.05

    @classmethod
    def get_gamma_regime(cls, net_gamma: float) -> str:
        """Classify normalized net gamma exposure"""
        if net_gamma < -cls.GAMMA_HIGH_THRESHOLD:
            return 'HIGH_NEGATIVE'
        elif net_gamma < -cls.GAMMA_MODERATE_THRESHOLD:
            return 'MODERATE_NEGATIVE'
        elif net_gamma > cls.GAMMA_HIGH_THRESHOLD:
            return 'HIGH_POSITIVE'
        elif net_gamma > cls.GAMMA_MODERATE_THRESHOLD:
            return 'MODERATE_POSITIVE'
        else:
            return 'NEUTRAL'


# ============================================================================
# Gamma Exposure
# ============================================================================

class GammaConfig:
    """Gamma exposure calculator parameters"""

    NORMALIZATION_SCALE: float = 1e6
    PROXIMITY_DECAY: float = 2.0
    MIN_USABLE_STRIKES: int = env_int('GAMMA_MIN_USABLE_STRIKES', 3)

    # Flip level grid
    FLIP_RANGE_PCT: float = env_float('GAMMA_FLIP_RANGE_PCT', 0.20)
    FLIP_GRID_STEP_PCT: float = env_float('GAMMA_FLIP_GRID_STEP_PCT', 0.005)
    ROC_RANGE_PCT: float = 0.10
    ROC_MIN_RATE: float = 0.001
    OI_WEIGHTED_RANGE_PCT: float = 0.10
    MAX_SECONDARY_FLIPS: int = 3
    TRIGGER_VOLUME_BAND_PCT: float = 0.02

    # Dealer positioning
    POSITIONING_THRESHOLD: float = 0.1
    POSITIONING_STRENGTH_SCALE: float = 0.5
    DEFAULT_VOLATILITY: float = 0.2

    # Pinning
    PIN_TOP_STRIKES: int = 10
    PIN_NEARBY_PCT: float = 0.05
    PIN_LEVEL_RANGE_PCT: float = 0.15
    PIN_MIN_STRENGTH: float = 0.2
    DEFAULT_DAYS_TO_EXPIRY: int = 30

    # Acceleration zones
    ZONE_RANGE_PCT: float = env_float('GAMMA_ZONE_RANGE_PCT', 0.10)
    ZONE_MIN_STRENGTH: float = 0.3
    ZONE_MAX_COUNT: int = 5

    # Confidence adjustment component weights
    ADJUSTMENT_WEIGHTS: Dict[str, float] = {
        'base': 0.40,
        'volatility': 0.20,
        'pinning': 0.20,
        'acceleration': 0.15,
        'time': 0.05,
    }
    ADJUSTMENT_LIMIT: float = 0.5

    @classmethod
    def get_significance(cls, gamma_change: float) -> str:
        """Flip significance from the size of the exposure change"""
        if gamma_change > 0.1:
            return 'CRITICAL'
        elif gamma_change > 0.05:
            return 'HIGH'
        elif gamma_change > 0.02:
            return 'MODERATE'
        else:
            return 'LOW'

    @classmethod
    def get_timeframe(cls, distance: float) -> str:
        """Timeframe bucket from distance to spot (fraction of price)"""
        if distance < 0.02:
            return 'IMMEDIATE'
        elif distance < 0.05:
            return 'SHORT_TERM'
        else:
            return 'MEDIUM_TERM'


# ============================================================================
# Engine
# ============================================================================

class EngineConfig:
    """Fan-out settings for the confidence engine"""

    MAX_WORKERS: int = env_int('CONFIDENCE_MAX_WORKERS', 6)
    APPLY_ADJUSTMENTS: bool = env_bool('CONFIDENCE_APPLY_ADJUSTMENTS', True)
