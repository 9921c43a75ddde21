"""
Connection score formula and stable ranking.
"""

from typing import Callable, Iterable, List, Sequence, TypeVar

from src.common.types import CommonalityResult, TasteCommonalities

T = TypeVar("T")

WORKPLACE_WEIGHT = 0.2
INTEREST_WEIGHT = 0.3
AFFINITY_WEIGHT = 0.1
AFFINITY_CAP = 0.3
HIGH_AFFINITY_THRESHOLD = 0.7
HIGH_AFFINITY_BONUS = 0.1
MAX_SCORE = 1.0


def compute_connection_score(taste: TasteCommonalities, workplace: Sequence[str]) -> float:
    """
    Weighted sum of commonality counts, capped at 1.0.

    0.2 per workplace commonality, 0.3 per taste commonality, 0.1 per
    affinity entry (at most 0.3), plus 0.1 per entry with affinity > 0.7.
    """
    score = len(workplace) * WORKPLACE_WEIGHT
    score += len(taste.common_interests) * INTEREST_WEIGHT
    score += min(len(taste.affinity_data) * AFFINITY_WEIGHT, AFFINITY_CAP)

    high_affinity = [
        e for e in taste.affinity_data
        if e.affinity is not None and e.affinity > HIGH_AFFINITY_THRESHOLD
    ]
    score += len(high_affinity) * HIGH_AFFINITY_BONUS

    return min(score, MAX_SCORE)


def rank_candidates(items: Iterable[T], key: Callable[[T], float]) -> List[T]:
    """Sort descending by ``key``; equal scores keep their input order."""
    return sorted(items, key=key, reverse=True)


def rank_results(results: Iterable[CommonalityResult]) -> List[CommonalityResult]:
    return rank_candidates(results, key=lambda r: r.connection_score)
