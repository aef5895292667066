"""
Confluence and Conviction Tests

Run with: pytest tests/test_confluence.py -v
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


class TestConfluence:
    """Tests for directional agreement across factors"""

    def test_identical_directions(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator
        from alphaconfluence.quant.factor_models import SignalDirection

        directions = {f"f{i}": SignalDirection.BULLISH for i in range(6)}
        assert ConfluenceCalculator().confluence(directions) == 1.0

    def test_even_split(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator

        directions = {"a": 1.0, "b": 1.0, "c": 1.0, "d": 0.0, "e": 0.0, "f": 0.0}
        assert ConfluenceCalculator().confluence(directions) == pytest.approx(0.0)

    def test_labels_and_scores_mix(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator

        directions = {"trend": "BULLISH", "momentum": "BUYING", "volume": "ACCUMULATION", "fibonacci": 1.0}
        assert ConfluenceCalculator().confluence(directions) == 1.0

    def test_partial_agreement(self, mixed_factors):
        from alphaconfluence.quant.confluence import ConfluenceCalculator

        directions = {name: score.direction for name, score in mixed_factors.items()}
        value = ConfluenceCalculator().confluence(directions)
        assert 0.0 < value < 1.0

    def test_empty(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator

        assert ConfluenceCalculator().confluence({}) == 0.0


class TestSignalDirection:
    """Tests for the confidence-weighted overall direction"""

    def test_unweighted(self, bullish_factors):
        from alphaconfluence.quant.confluence import ConfluenceCalculator
        from alphaconfluence.quant.factor_models import SignalDirection

        directions = {name: score.direction for name, score in bullish_factors.items()}
        assert ConfluenceCalculator().signal_direction(directions) == SignalDirection.BULLISH

    def test_confidence_weighting(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator
        from alphaconfluence.quant.factor_models import SignalDirection

        calculator = ConfluenceCalculator()
        directions = {"trend": "BULLISH", "momentum": "BEARISH"}
        assert calculator.signal_direction(directions, {"trend": 0.9, "momentum": 0.1}) == SignalDirection.BULLISH
        assert calculator.signal_direction(directions, {"trend": 0.1, "momentum": 0.9}) == SignalDirection.BEARISH
        assert calculator.signal_direction(directions) == SignalDirection.NEUTRAL

    def test_zero_confidences_fall_back_to_equal_weights(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator
        from alphaconfluence.quant.factor_models import SignalDirection

        direction = ConfluenceCalculator().signal_direction({"trend": "BULLISH"}, {"trend": 0.0})
        assert direction == SignalDirection.BULLISH

    def test_empty_is_neutral(self):
        from alphaconfluence.quant.confluence import ConfluenceCalculator
        from alphaconfluence.quant.factor_models import SignalDirection

        assert ConfluenceCalculator().signal_direction({}) == SignalDirection.NEUTRAL
