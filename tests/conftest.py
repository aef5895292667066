"""
Shared test fixtures for the AlphaConfluence test suite.

Provides:
- Market data (spot price, fixed evaluation timestamp)
- Option chain records and snapshot builders
- Factor score sets for the confidence pipeline

Run tests with: pytest -v
"""

import pytest
from datetime import datetime, timedelta
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alphaconfluence.data.option_chain import OptionChainSnapshot
from alphaconfluence.quant.factor_models import FactorName, FactorScore, SignalDirection

# Fixed evaluation time so days-to-expiry is deterministic
FIXED_NOW = datetime(2025, 6, 2, 10, 0, 0)


def expiry_in(days: int) -> str:
    return (FIXED_NOW.date() + timedelta(days=days)).isoformat()


def make_snapshot(records, price, symbol="SPY", timestamp=None):
    """Build a snapshot from flat contract records at the fixed test time"""
    return OptionChainSnapshot.from_records(symbol, price, records, timestamp=timestamp or FIXED_NOW)


def contract(strike, option_type, open_interest, gamma, volume=0, days=1, iv=0.2, delta=0.0):
    return {
        "strike": strike,
        "option_type": option_type,
        "expiration": expiry_in(days),
        "open_interest": open_interest,
        "volume": volume,
        "gamma": gamma,
        "delta": delta,
        "theta": -0.05,
        "vega": 0.15,
        "iv": iv,
    }


# =============================================================================
# MARKET DATA FIXTURES
# =============================================================================

@pytest.fixture
def mock_spot_price():
    """Current SPY spot price"""
    return 585.50


@pytest.fixture
def fixed_now():
    return FIXED_NOW


# =============================================================================
# OPTIONS CHAIN FIXTURES
# =============================================================================

@pytest.fixture
def mock_option_chain():
    """Mock SPY options chain records with Greeks, expiring tomorrow"""
    base_strike = 580.0
    chains = []

    for i in range(-10, 11):
        strike = base_strike + (i * 5)
        # Simulate realistic gamma distribution
        distance_from_atm = abs(i)
        gamma = max(0.001, 0.08 - (distance_from_atm * 0.007))

        chains.append({
            "symbol": f"SPY{strike:.0f}C",
            "strike": strike,
            "option_type": "call",
            "expiration": expiry_in(1),
            "volume": 1000 + abs(i) * 100,
            "open_interest": 5000 + abs(i) * 500,
            "gamma": gamma,
            "delta": 0.5 - (i * 0.05),
            "theta": -0.05,
            "vega": 0.15,
            "iv": 0.18 + abs(i) * 0.01,
        })

        chains.append({
            "symbol": f"SPY{strike:.0f}P",
            "strike": strike,
            "option_type": "put",
            "expiration": expiry_in(1),
            "volume": 800 + abs(i) * 80,
            "open_interest": 4000 + abs(i) * 400,
            "gamma": gamma,
            "delta": -0.5 + (i * 0.05),
            "theta": -0.05,
            "vega": 0.15,
            "iv": 0.18 + abs(i) * 0.01,
        })

    return chains


@pytest.fixture
def mock_snapshot(mock_option_chain, mock_spot_price):
    """OptionChainSnapshot built from mock_option_chain"""
    return make_snapshot(mock_option_chain, mock_spot_price)


@pytest.fixture
def two_sided_snapshot(mock_spot_price):
    """
    Heavy put open interest below spot and heavy call open interest above,
    so net exposure is positive at low prices and negative at high prices.
    """
    records = [
        contract(550.0, "put", 20000, 0.05, volume=3000),
        contract(585.0, "call", 2000, 0.02, volume=500),
        contract(585.0, "put", 2000, 0.02, volume=500),
        contract(620.0, "call", 20000, 0.05, volume=3000),
    ]
    return make_snapshot(records, mock_spot_price)


@pytest.fixture
def pinned_snapshot(mock_spot_price):
    """Open interest concentrated at the 585 strike, expiring tomorrow"""
    records = []
    for strike in range(560, 615, 5):
        oi = 30000 if strike == 585 else 1000
        records.append(contract(float(strike), "call", oi, 0.05, volume=500))
    return make_snapshot(records, mock_spot_price)


@pytest.fixture
def thin_snapshot(mock_spot_price):
    """Only two usable strikes"""
    records = [
        contract(580.0, "call", 1000, 0.05),
        contract(590.0, "put", 1000, 0.05),
    ]
    return make_snapshot(records, mock_spot_price)


# =============================================================================
# FACTOR FIXTURES
# =============================================================================

@pytest.fixture
def scenario_normalized():
    """Normalized factor confidences with a known weighted sum of 0.6575"""
    return {
        "trend": 0.8,
        "momentum": 0.7,
        "volume": 0.6,
        "ribbon": 0.65,
        "fibonacci": 0.5,
        "gamma": 0.5,
    }


@pytest.fixture
def bullish_factors():
    """Six agreeing bullish factor scores"""
    return {
        "trend": FactorScore(FactorName.TREND, 0.80, 0.70, SignalDirection.BULLISH),
        "momentum": FactorScore(FactorName.MOMENTUM, 0.75, 0.65, "BUYING"),
        "volume": FactorScore(FactorName.VOLUME, 0.70, 0.60, "ACCUMULATION"),
        "ribbon": FactorScore(FactorName.RIBBON, 0.72, 0.70, SignalDirection.BULLISH),
        "fibonacci": FactorScore(FactorName.FIBONACCI, 0.65, 0.60, 0.9),
        "gamma": FactorScore(FactorName.GAMMA, 0.60, 0.55, SignalDirection.BULLISH),
    }


@pytest.fixture
def mixed_factors():
    """Factor scores split between bullish and bearish"""
    return {
        "trend": FactorScore(FactorName.TREND, 0.60, 0.80, SignalDirection.BULLISH),
        "momentum": FactorScore(FactorName.MOMENTUM, 0.40, 0.20, SignalDirection.BEARISH),
        "volume": FactorScore(FactorName.VOLUME, 0.55, 0.50, "DISTRIBUTION"),
        "ribbon": FactorScore(FactorName.RIBBON, 0.50, 0.70, "BULLISH"),
        "fibonacci": FactorScore(FactorName.FIBONACCI, 0.45, 0.30, SignalDirection.NEUTRAL),
        "gamma": FactorScore(FactorName.GAMMA, 0.35, 0.40, SignalDirection.BEARISH),
    }


# =============================================================================
# BUILDER FIXTURES
# =============================================================================

@pytest.fixture
def contract_record():
    """Factory for a flat contract record: contract_record(strike, type, oi, gamma, ...)"""
    return contract


@pytest.fixture
def snapshot_builder():
    """Factory for snapshots at the fixed test time: snapshot_builder(records, price)"""
    return make_snapshot
