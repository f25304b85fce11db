"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Sequence

from levelscope.services.base import BaseService
from levelscope.schemas.market import AnalysisRequest, Bar
from levelscope.schemas.indicators import IndicatorSet


class IndicatorEngineInterface(BaseService[AnalysisRequest, IndicatorSet]):
    """
    Indicator Engine Service Contract.

    INPUT: AnalysisRequest
        - symbol, interval label and OHLCV bars

    OUTPUT: IndicatorSet
        - EMA family, ATR/volatility regime, Bollinger Bands, overextension,
          optional Fibonacci, trend, volume profile and swing points
    """

    @property
    def name(self) -> str:
        return "IndicatorEngine"

    @abstractmethod
    async def execute(self, input_data: AnalysisRequest) -> IndicatorSet:
        """Calculate indicators for the request's bar series."""
        pass

    @abstractmethod
    def compute_all(self, bars: Sequence[Bar], symbol: str, interval: str) -> IndicatorSet:
        """
        Calculate every indicator for one series.

        Args:
            bars: OHLCV bars in ascending timestamp order
            symbol: Instrument symbol
            interval: Interval label, sizes the Fibonacci threshold

        Returns:
            Complete indicator snapshot

        Raises:
            InputError: If the series fails validation
        """
        pass

    async def health_check(self) -> bool:
        """Indicator engine is always healthy (pure computation)."""
        return True
