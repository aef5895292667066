"""
AlphaConfluence - Multi-Factor Signal Confidence

Combines trend, momentum, volume, ribbon, Fibonacci and options-gamma factor
scores into a bounded confidence, a conviction grade and a watch-list
recommendation.

Subpackages:
- data: option chain snapshots
- gamma: gamma exposure, flip levels, pinning, acceleration zones
- quant: normalization, aggregation, conviction, history, cross-instrument
- core: SignalConfidenceEngine
- utils: logging infrastructure
"""

__version__ = "1.0.0"
