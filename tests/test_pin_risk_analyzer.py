"""
Pin Risk Analyzer Tests

Tests for open interest pinning risk and detailed pin levels.

Run with: pytest tests/test_pin_risk_analyzer.py -v
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))


class TestClassifyPinRisk:
    """Tests for the probability -> risk level mapping"""

    def test_boundaries(self):
        from alphaconfluence.gamma.pin_risk_analyzer import PinRiskLevel, classify_pin_risk

        assert classify_pin_risk(0.81) == PinRiskLevel.EXTREME
        assert classify_pin_risk(0.8) == PinRiskLevel.HIGH
        assert classify_pin_risk(0.61) == PinRiskLevel.HIGH
        assert classify_pin_risk(0.6) == PinRiskLevel.MODERATE
        assert classify_pin_risk(0.41) == PinRiskLevel.MODERATE
        assert classify_pin_risk(0.4) == PinRiskLevel.LOW
        assert classify_pin_risk(0.0) == PinRiskLevel.LOW


class TestPinningRisk:
    """Tests for strike-concentration pinning risk"""

    def test_concentrated_strike_near_expiry_is_extreme(self, pinned_snapshot):
        from alphaconfluence.gamma.pin_risk_analyzer import PinRiskLevel, pinning_risk

        risk = pinning_risk(pinned_snapshot)
        assert risk.primary_pin == 585.0
        assert risk.pin_strength == pytest.approx(0.75)
        assert risk.concentration == pytest.approx(0.975)
        assert risk.time_to_expiry == 1
        assert risk.probability == pytest.approx(0.904)
        assert risk.risk_level == PinRiskLevel.EXTREME
        assert risk.secondary_pins == [560.0, 565.0, 570.0]

    def test_further_expiry_lowers_probability(self, contract_record, snapshot_builder, mock_spot_price):
        from alphaconfluence.gamma.pin_risk_analyzer import PinRiskLevel, pinning_risk

        records = [
            contract_record(float(strike), "call", 30000 if strike == 585 else 1000, 0.05, days=20)
            for strike in range(560, 615, 5)
        ]
        risk = pinning_risk(snapshot_builder(records, mock_spot_price))
        assert risk.time_to_expiry == 20
        assert risk.probability == pytest.approx(0.651)
        assert risk.risk_level == PinRiskLevel.HIGH

    def test_spread_out_chain(self, mock_snapshot):
        """Largest open interest sits at the wings, only 610 is near spot"""
        from alphaconfluence.gamma.pin_risk_analyzer import PinRiskLevel, pinning_risk

        risk = pinning_risk(mock_snapshot)
        assert risk.primary_pin == 610.0
        assert risk.secondary_pins == []
        assert risk.probability == pytest.approx(0.420, abs=0.001)
        assert risk.risk_level == PinRiskLevel.MODERATE

    def test_no_open_interest_gives_default(self, contract_record, snapshot_builder, mock_spot_price):
        from alphaconfluence.gamma.pin_risk_analyzer import PinRiskLevel, pinning_risk

        snapshot = snapshot_builder([contract_record(585.0, "call", 0, 0.05)], mock_spot_price)
        risk = pinning_risk(snapshot)
        assert risk.primary_pin is None
        assert risk.probability == 0.0
        assert risk.time_to_expiry == 1
        assert risk.risk_level == PinRiskLevel.LOW

    def test_to_dict(self, pinned_snapshot):
        from alphaconfluence.gamma.pin_risk_analyzer import pinning_risk

        data = pinning_risk(pinned_snapshot).to_dict()
        assert data["risk_level"] == "EXTREME"
        assert data["primary_pin"] == 585.0


class TestPinLevels:
    """Tests for detailed pin levels"""

    def test_pin_type_classification(self):
        from alphaconfluence.gamma.pin_risk_analyzer import PinType, _pin_type

        assert _pin_type(300, 100) == PinType.CALL_PIN
        assert _pin_type(100, 300) == PinType.PUT_PIN
        assert _pin_type(100, 100) == PinType.DUAL_PIN
        assert _pin_type(100, 60) == PinType.GAMMA_PIN
        assert _pin_type(0, 0) == PinType.GAMMA_PIN

    def test_call_only_chain_gives_call_pins(self, pinned_snapshot):
        from alphaconfluence.gamma.pin_risk_analyzer import PinType, pin_levels

        levels = pin_levels(pinned_snapshot)
        assert levels
        assert all(level.pin_type == PinType.CALL_PIN for level in levels)
        assert all(level.strength > 0.2 for level in levels)
        strengths = [level.strength for level in levels]
        assert strengths == sorted(strengths, reverse=True)

    def test_balanced_strikes_are_dual_pins(self, mock_snapshot):
        from alphaconfluence.gamma.pin_risk_analyzer import PinType, pin_levels

        levels = pin_levels(mock_snapshot)
        assert levels
        assert all(level.pin_type == PinType.DUAL_PIN for level in levels)
        assert all(abs(level.strike - 585.5) / 585.5 <= 0.15 for level in levels)

    def test_detailed_pinning_risk(self, pinned_snapshot):
        from alphaconfluence.gamma.pin_risk_analyzer import detailed_pinning_risk

        detailed = detailed_pinning_risk(pinned_snapshot)
        assert detailed.primary_pin.strength == pytest.approx(1.0)
        assert len(detailed.secondary_pins) == 3
        assert 0.0 <= detailed.overall_strength <= 1.0
        assert 0.0 <= detailed.persistence <= 1.0
        assert 0.0 <= detailed.efficiency <= 1.0
        assert 0.0 <= detailed.confidence_score <= 1.0

    def test_detailed_default_without_levels(self, contract_record, snapshot_builder, mock_spot_price):
        from alphaconfluence.gamma.pin_risk_analyzer import PinType, detailed_pinning_risk

        snapshot = snapshot_builder([contract_record(585.0, "call", 0, 0.05)], mock_spot_price)
        detailed = detailed_pinning_risk(snapshot)
        assert detailed.primary_pin.strike == mock_spot_price
        assert detailed.primary_pin.pin_type == PinType.GAMMA_PIN
        assert detailed.secondary_pins == []
        assert detailed.to_dict()["risk_level"] == "LOW"
