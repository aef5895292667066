"""
Tests for the Configuration Module

Tests the AlphaConfluence configuration including:
- Factor weight vector
- Conviction level thresholds
- Gamma regime classification for the adjustment chain
- Flip significance and timeframe buckets
- Environment variable helpers

Run with: pytest tests/test_config.py -v
"""

import pytest
from unittest.mock import patch
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


class TestFactorWeightConfig:
    """Tests for the production weight vector"""

    def test_weights_sum_to_one(self):
        from alphaconfluence.config import FactorWeightConfig

        weights = FactorWeightConfig.get_weights()
        assert sum(weights.values()) == pytest.approx(1.0, abs=FactorWeightConfig.SUM_TOLERANCE)

    def test_weights_cover_all_factors(self):
        from alphaconfluence.config import FactorWeightConfig
        from alphaconfluence.quant.factor_models import FACTOR_ORDER

        assert list(FactorWeightConfig.get_weights()) == FACTOR_ORDER

    def test_trend_weighted_highest(self):
        from alphaconfluence.config import FactorWeightConfig

        weights = FactorWeightConfig.get_weights()
        assert max(weights, key=weights.get) == 'trend'

    def test_default_weights_are_valid(self):
        from alphaconfluence.config import FactorWeightConfig
        from alphaconfluence.quant.factor_models import FACTOR_ORDER

        defaults = FactorWeightConfig.DEFAULT_WEIGHTS
        assert list(defaults) == FACTOR_ORDER
        assert sum(defaults.values()) == pytest.approx(1.0)
        assert all(w >= 0 for w in defaults.values())


class TestNormalizationConfig:
    """Tests for normalization bounds and neutral defaults"""

    def test_bounds_ordered(self):
        from alphaconfluence.config import NormalizationConfig

        assert 0 < NormalizationConfig.MIN_FACTOR_CONFIDENCE < NormalizationConfig.MAX_FACTOR_CONFIDENCE <= 1.0

    def test_neutral_defaults(self):
        from alphaconfluence.config import NormalizationConfig

        assert NormalizationConfig.DEFAULT_FACTOR_CONFIDENCE == 0.3
        assert NormalizationConfig.DEFAULT_FACTOR_STRENGTH == 0.3
        assert NormalizationConfig.DEFAULT_FACTOR_DIRECTION == 0.5


class TestConvictionConfig:
    """Tests for conviction level thresholds"""

    def test_thresholds_ordered(self):
        from alphaconfluence.config import ConvictionConfig

        assert ConvictionConfig.VERY_HIGH > ConvictionConfig.HIGH > ConvictionConfig.MODERATE > ConvictionConfig.LOW

    @pytest.mark.parametrize("score,level", [
        (0.90, 'VERY_HIGH'),
        (0.85, 'VERY_HIGH'),
        (0.72, 'HIGH'),
        (0.55, 'MODERATE'),
        (0.41, 'LOW'),
        (0.10, 'VERY_LOW'),
    ])
    def test_get_level(self, score, level):
        from alphaconfluence.config import ConvictionConfig

        assert ConvictionConfig.get_level(score) == level

    def test_quality_weights_sum_to_one(self):
        from alphaconfluence.config import ConvictionConfig

        total = (ConvictionConfig.QUALITY_CONFIDENCE_WEIGHT + ConvictionConfig.QUALITY_CONVICTION_WEIGHT
                 + ConvictionConfig.QUALITY_STABILITY_WEIGHT)
        assert total == pytest.approx(1.0)


class TestAdjustmentConfig:
    """Tests for the adjustment chain constants"""

    @pytest.mark.parametrize("net_gamma,regime", [
        (-0.6, 'HIGH_NEGATIVE'),
        (-0.3, 'MODERATE_NEGATIVE'),
        (-0.1, 'NEUTRAL'),
        (0.0, 'NEUTRAL'),
        (0.1, 'NEUTRAL'),
        (0.3, 'MODERATE_POSITIVE'),
        (0.51, 'HIGH_POSITIVE'),
    ])
    def test_get_gamma_regime(self, net_gamma, regime):
        from alphaconfluence.config import AdjustmentConfig

        assert AdjustmentConfig.get_gamma_regime(net_gamma) == regime

    def test_every_regime_has_multiplier(self):
        from alphaconfluence.config import AdjustmentConfig

        for value in (-1.0, -0.3, 0.0, 0.3, 1.0):
            assert AdjustmentConfig.get_gamma_regime(value) in AdjustmentConfig.GAMMA_EXPOSURE_MULTIPLIERS

    def test_fibonacci_zones(self):
        from alphaconfluence.config import AdjustmentConfig

        zones = AdjustmentConfig.FIBONACCI_ZONE_MULTIPLIERS
        assert zones['COMPRESSION'] > zones['MID_EXPANSION'] > zones['FULL_EXPANSION']
        assert zones['FULL_EXPANSION'] > zones['OVER_EXTENSION'] > zones['EXHAUSTION']


class TestGammaConfig:
    """Tests for gamma calculator parameters"""

    def test_flip_grid_has_81_points(self):
        from alphaconfluence.config import GammaConfig

        points = round(2 * GammaConfig.FLIP_RANGE_PCT / GammaConfig.FLIP_GRID_STEP_PCT) + 1
        assert points == 81

    def test_adjustment_weights_sum_to_one(self):
        from alphaconfluence.config import GammaConfig

        assert sum(GammaConfig.ADJUSTMENT_WEIGHTS.values()) == pytest.approx(1.0)

    @pytest.mark.parametrize("change,significance", [
        (0.2, 'CRITICAL'),
        (0.07, 'HIGH'),
        (0.03, 'MODERATE'),
        (0.02, 'LOW'),
        (0.0, 'LOW'),
    ])
    def test_get_significance(self, change, significance):
        from alphaconfluence.config import GammaConfig

        assert GammaConfig.get_significance(change) == significance

    @pytest.mark.parametrize("distance,timeframe", [
        (0.0, 'IMMEDIATE'),
        (0.019, 'IMMEDIATE'),
        (0.02, 'SHORT_TERM'),
        (0.049, 'SHORT_TERM'),
        (0.05, 'MEDIUM_TERM'),
    ])
    def test_get_timeframe(self, distance, timeframe):
        from alphaconfluence.config import GammaConfig

        assert GammaConfig.get_timeframe(distance) == timeframe


class TestEnvHelpers:
    """Tests for environment variable helpers"""

    def test_env_float(self):
        from alphaconfluence.config import env_float

        with patch.dict('os.environ', {'TEST_FLOAT': '0.42'}):
            assert env_float('TEST_FLOAT', 0.1) == 0.42
        with patch.dict('os.environ', {'TEST_FLOAT': 'not-a-number'}):
            assert env_float('TEST_FLOAT', 0.1) == 0.1

    def test_env_int(self):
        from alphaconfluence.config import env_int

        with patch.dict('os.environ', {'TEST_INT': '8'}):
            assert env_int('TEST_INT', 6) == 8
        with patch.dict('os.environ', {'TEST_INT': 'eight'}):
            assert env_int('TEST_INT', 6) == 6

    def test_env_bool(self):
        from alphaconfluence.config import env_bool

        with patch.dict('os.environ', {'TEST_BOOL': 'yes'}):
            assert env_bool('TEST_BOOL', False) is True
        with patch.dict('os.environ', {'TEST_BOOL': 'off'}):
            assert env_bool('TEST_BOOL', True) is False


class TestEngineConfig:
    """Tests for engine fan-out settings"""

    def test_defaults_are_sane(self):
        from alphaconfluence.config import EngineConfig

        assert EngineConfig.MAX_WORKERS >= 1
        assert isinstance(EngineConfig.APPLY_ADJUSTMENTS, bool)
