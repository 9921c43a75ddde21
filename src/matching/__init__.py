"""
Matching: taste-affinity scoring of colleagues for a new employee.

Gathers taste-graph signals per profile, derives workplace and taste
commonalities, scores and ranks candidates, and drives introductions.
"""

from src.matching.commonality_scorer import CommonalityScorer
from src.matching.connection_ranker import compute_connection_score, rank_results
from src.matching.introductions import IntroductionOutcome, IntroductionService
from src.matching.signal_gatherer import SignalGatherer

__all__ = [
    "CommonalityScorer",
    "IntroductionOutcome",
    "IntroductionService",
    "SignalGatherer",
    "compute_connection_score",
    "rank_results",
]
