"""
Analysis Service Implementation

Runs the full pipeline for one bar series:
Validator -> IndicatorEngine -> LevelCandidateBuilder -> ConfluenceScorer
-> ConfidenceAggregator.

Pure and synchronous. Identical input (bars, interval, as_of, config) gives
an identical AnalysisOutput.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence, Union

from levelscope.core.config import Settings, get_settings
from levelscope.schemas.analysis import AnalysisOutput, ScoredAnalysis
from levelscope.schemas.config import AnalysisConfig, get_analysis_config
from levelscope.schemas.market import AnalysisRequest, Bar
from levelscope.services.analysis.interface import AnalysisServiceInterface
from levelscope.services.base import InputError
from levelscope.services.cache.memory import ResultCache, fingerprint
from levelscope.services.indicators.service import IndicatorEngine
from levelscope.services.levels.candidates import LevelCandidateBuilder
from levelscope.services.levels.confidence import ConfidenceAggregator
from levelscope.services.levels.scorer import ConfluenceScorer

logger = logging.getLogger(__name__)


class AnalysisService(AnalysisServiceInterface):
    """
    Support/Resistance Analysis Service.

    Holds only its configuration (and an optional result cache); no state
    carries over between calls.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        cache: Optional[ResultCache[AnalysisOutput]] = None,
    ):
        self.config = config or AnalysisConfig()
        self.cache = cache
        self.engine = IndicatorEngine(self.config)
        self.builder = LevelCandidateBuilder(self.config)
        self.scorer = ConfluenceScorer(self.config)
        self.aggregator = ConfidenceAggregator(self.config)

    async def execute(self, input_data: AnalysisRequest) -> AnalysisOutput:
        """Run the pipeline for one request."""
        return self.analyze(input_data)

    def analyze(self, request: AnalysisRequest) -> AnalysisOutput:
        """Run the full pipeline synchronously."""
        key = None
        if self.cache is not None:
            key = fingerprint(request.symbol, request.interval, request.bars, request.as_of, self.config)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {request.symbol} ({request.interval})")
                return cached

        try:
            indicators = self.engine.compute_all(request.bars, request.symbol, request.interval)
        except InputError as e:
            logger.warning(f"Rejected analysis request: {e.message}")
            raise

        candidates = self.builder.build(indicators)
        levels = self.scorer.score(candidates, indicators)
        support, resistance = self.scorer.partition(levels)
        confidence = self.aggregator.aggregate(indicators, levels)

        current = indicators.current_price
        display = self.config.display
        analysis = ScoredAnalysis(
            support_levels=tuple(support),
            resistance_levels=tuple(resistance),
            display_levels=self.scorer.level_slice(levels, display.max_per_side, current),
            expanded_levels=self.scorer.level_slice(levels, display.max_expanded_per_side, current),
            confidence=confidence,
        )

        output = AnalysisOutput(
            symbol=request.symbol,
            interval=request.interval,
            as_of=request.as_of,
            indicators=indicators,
            analysis=analysis,
        )

        logger.info(
            f"Analyzed {request.symbol} ({request.interval}): {len(request.bars)} bars, "
            f"{len(support)} support / {len(resistance)} resistance, "
            f"confidence {confidence.overall} ({confidence.label.value})"
        )

        if self.cache is not None and key is not None:
            self.cache.set(key, output)
        return output


def analyze_bars(
    bars: Sequence[Union[Bar, dict]],
    symbol: str,
    interval: str,
    as_of: Optional[datetime] = None,
    config: Optional[AnalysisConfig] = None,
) -> AnalysisOutput:
    """Functional entry point: analyze one series with a fresh, uncached service."""
    request = AnalysisRequest(symbol=symbol, interval=interval, bars=tuple(bars), as_of=as_of)
    return AnalysisService(config or get_analysis_config()).analyze(request)


# Singleton instance
_service_instance: Optional[AnalysisService] = None


def get_analysis_service(settings: Optional[Settings] = None) -> AnalysisService:
    """Get or create analysis service instance."""
    global _service_instance
    if _service_instance is None:
        settings = settings or get_settings()
        cache = ResultCache(settings.result_cache_size) if settings.enable_result_cache else None
        _service_instance = AnalysisService(get_analysis_config(settings.analysis_config_file), cache)
    return _service_instance
