"""
Analysis Service Interface

Defines the contract for the full support/resistance pipeline.
"""

from abc import abstractmethod

from levelscope.services.base import BaseService
from levelscope.schemas.market import AnalysisRequest
from levelscope.schemas.analysis import AnalysisOutput


class AnalysisServiceInterface(BaseService[AnalysisRequest, AnalysisOutput]):
    """
    Analysis Service Contract.

    INPUT: AnalysisRequest
        - symbol, interval label, OHLCV bars, optional as_of

    OUTPUT: AnalysisOutput
        - IndicatorSet plus ranked, confidence-scored support/resistance levels
    """

    @property
    def name(self) -> str:
        return "AnalysisService"

    @abstractmethod
    async def execute(self, input_data: AnalysisRequest) -> AnalysisOutput:
        """Run the pipeline for one request."""
        pass

    @abstractmethod
    def analyze(self, request: AnalysisRequest) -> AnalysisOutput:
        """
        Run Validator -> IndicatorEngine -> LevelCandidateBuilder ->
        ConfluenceScorer -> ConfidenceAggregator synchronously.

        Raises:
            InputError: If the bar series fails validation (no partial output)
        """
        pass

    async def health_check(self) -> bool:
        """Analysis service is always healthy (pure computation)."""
        return True
