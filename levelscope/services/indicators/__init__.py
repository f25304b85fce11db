"""
Indicator Engine Service

CONTRACT:
    Input:  Bar series (symbol, interval label)
    Output: IndicatorSet

RESPONSIBILITIES:
    - Validate series shape and length
    - Calculate EMA family, ATR and volatility regime, Bollinger Bands
    - Measure overextension from EMA21
    - Detect swing points and (when a leg qualifies) Fibonacci retracements
    - Classify trend and build the volume profile

PURE PYTHON - No I/O.
Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from levelscope.services.indicators.interface import IndicatorEngineInterface
from levelscope.services.indicators.service import IndicatorEngine, get_indicator_engine
from levelscope.services.indicators.swings import SwingPointDetector, FibonacciSwing
from levelscope.services.indicators.validator import validate_bars

__all__ = [
    "IndicatorEngineInterface",
    "IndicatorEngine",
    "get_indicator_engine",
    "SwingPointDetector",
    "FibonacciSwing",
    "validate_bars",
]
