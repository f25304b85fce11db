"""
Level Scoring Services

CONTRACT:
    Input:  IndicatorSet
    Output: ranked ScoredLevels + Confidence

RESPONSIBILITIES:
    - Build level candidates (swings, EMAs, Fibonacci, volume nodes, round numbers)
    - Merge overlapping zones and score confluence
    - Aggregate overall confidence with itemized factors
"""

from levelscope.services.levels.candidates import LevelCandidateBuilder, side_for
from levelscope.services.levels.scorer import ConfluenceScorer, merge_candidates
from levelscope.services.levels.confidence import ConfidenceAggregator

__all__ = [
    "LevelCandidateBuilder",
    "side_for",
    "ConfluenceScorer",
    "merge_candidates",
    "ConfidenceAggregator",
]
