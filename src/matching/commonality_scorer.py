"""
Commonality Scorer

Turns partial, failure-prone taste-graph signals into one CommonalityResult
per candidate colleague:

1. Workplace commonalities (department, seniority, office)
2. Signal bags for both people (SignalGatherer)
3. Taste commonalities:
   a. group comparison of the two entity sets
   b. demographically-biased insight pass (affinity > 0.5)
   c. shared entity categories
   d. shared tag names
4. One-sentence insight from the text generator (templated fallback)
5. Connection score (connection_ranker)

Candidates are scored sequentially, each inside its own error boundary; a
candidate whose pipeline raises still receives a low-confidence result.
"""

import logging
from typing import List, Optional, Sequence

from src.clients.qloo_client import EntityURN, InsightSignal, QlooClient
from src.clients.text_generator import TextGenerator
from src.common.config import Config
from src.common.error_handling import TextGenerationError
from src.common.types import (
    CommonalityResult,
    Entity,
    Profile,
    RankedCandidate,
    SignalBag,
    TasteCommonalities,
)
from src.matching.connection_ranker import compute_connection_score, rank_candidates
from src.matching.demographics import map_age_range, map_gender
from src.matching.signal_gatherer import SignalGatherer

logger = logging.getLogger(__name__)

LEADERSHIP_KEYWORDS = ("vp", "director", "head", "chief", "manager", "lead")
OFFICE_LOCATION = "London"

COMPARE_ENTITY_LIMIT = 5
COMPARE_TOP_N = 3
BIAS_EMPLOYEE_LIMIT = 3
BIAS_CANDIDATE_LIMIT = 2
BIAS_TAKE = 10
BIAS_AFFINITY_THRESHOLD = 0.5
BIAS_TOP_N = 3

FALLBACK_COMMONALITIES = ["Same company"]
FALLBACK_INSIGHT = "Unable to fetch Qloo insights at this time"
FALLBACK_SCORE = 0.1

INSIGHT_MAX_TOKENS = 100


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def is_leadership_role(role: str) -> bool:
    role_lower = (role or "").lower()
    return any(kw in role_lower for kw in LEADERSHIP_KEYWORDS)


def find_workplace_commonalities(employee: Profile, candidate: Profile) -> List[str]:
    commonalities: List[str] = []

    if employee.department and employee.department == candidate.department:
        commonalities.append(f"Both work in {employee.department}")

    # Both roles must look senior, not just one
    if is_leadership_role(employee.role) and is_leadership_role(candidate.role):
        commonalities.append("Similar leadership roles")

    if employee.location and OFFICE_LOCATION in employee.location:
        commonalities.append(f"Both based in or work with {OFFICE_LOCATION} office")

    return commonalities


def _overlap(first: Sequence[Optional[str]], second: Sequence[Optional[str]]) -> List[str]:
    """Distinct non-empty values of ``first`` (in order) also in ``second``."""
    others = set(second)
    return [value for value in dict.fromkeys(first) if value and value in others]


def build_insight_prompt(
    employee: Profile,
    candidate: Profile,
    taste: TasteCommonalities,
    workplace: Sequence[str],
) -> str:
    lines = [
        f"Based on the following information, create a brief, natural insight about what "
        f"{employee.name} and {candidate.name} might have in common or could connect over:",
        "",
        f"Employee: {employee.name}",
        f"- Role: {employee.role}",
        f"- Department: {employee.department}",
        f"- Location: {employee.location or 'Unknown'}",
    ]
    if employee.cultural_heritage:
        lines.append(f"- Cultural Heritage: {', '.join(employee.cultural_heritage)}")
    lines += [
        "",
        f"Colleague: {candidate.name}",
        f"- Role: {candidate.role}",
        f"- Department: {candidate.department}",
        "",
        f"Workplace commonalities: {'; '.join(workplace)}",
        f"Taste/Interest commonalities: {'; '.join(taste.common_interests)}",
    ]
    if taste.affinity_data:
        affinities = ", ".join(
            f"{e.name} (affinity: {e.affinity if e.affinity is not None else 'high'})"
            for e in taste.affinity_data[:2]
        )
        lines.append(f"Affinity insights: {affinities}")
    lines += [
        "",
        "Write a single sentence that highlights the most interesting connection point "
        "between these two people. Focus on shared interests, cultural connections, or "
        "professional synergies. Be specific and actionable.",
    ]
    return "\n".join(lines)


def fallback_insight(employee: Profile, candidate: Profile, workplace: Sequence[str]) -> str:
    topic = workplace[0] if workplace else "work at the company"
    return f"{employee.name} and {candidate.name} could connect over their {topic}."


def fallback_result(candidate: Profile) -> CommonalityResult:
    return CommonalityResult(
        person_id=candidate.id,
        person_name=candidate.name,
        commonalities=list(FALLBACK_COMMONALITIES),
        insight=FALLBACK_INSIGHT,
        connection_score=FALLBACK_SCORE,
    )


class CommonalityScorer:
    """
    Scores candidate colleagues against a new employee.

    Args:
        qloo: Taste-graph client
        text_generator: Produces the one-sentence insight
        gatherer: Signal gatherer (defaults to one over ``qloo``)
    """

    def __init__(
        self,
        qloo: QlooClient,
        text_generator: TextGenerator,
        gatherer: Optional[SignalGatherer] = None,
    ):
        self.qloo = qloo
        self.text_generator = text_generator
        self.gatherer = gatherer or SignalGatherer(qloo)

    async def score(self, employee: Profile, candidates: Sequence[Profile]) -> List[CommonalityResult]:
        """One result per candidate, in input order."""
        results: List[CommonalityResult] = []
        for candidate in candidates:
            try:
                results.append(await self._score_candidate(employee, candidate))
            except Exception as e:
                logger.error(f"Error finding commonalities for {candidate.name}: {e}")
                results.append(fallback_result(candidate))
        return results

    async def score_and_rank(
        self,
        employee: Profile,
        candidates: Sequence[Profile],
    ) -> List[RankedCandidate]:
        results = await self.score(employee, candidates)
        paired = [
            RankedCandidate(profile=candidate, result=result, position=index)
            for index, (candidate, result) in enumerate(zip(candidates, results))
        ]
        return rank_candidates(paired, key=lambda rc: rc.score)

    async def _score_candidate(self, employee: Profile, candidate: Profile) -> CommonalityResult:
        workplace = find_workplace_commonalities(employee, candidate)

        employee_signals = await self.gatherer.gather(employee)
        candidate_signals = await self.gatherer.gather(candidate)

        taste = await self.find_taste_commonalities(
            employee_signals, candidate_signals, employee
        )
        insight = await self.generate_insight(employee, candidate, taste, workplace)

        return CommonalityResult(
            person_id=candidate.id,
            person_name=candidate.name,
            commonalities=_dedupe(workplace + taste.common_interests),
            insight=insight,
            connection_score=compute_connection_score(taste, workplace),
        )

    async def find_taste_commonalities(
        self,
        employee_signals: SignalBag,
        candidate_signals: SignalBag,
        employee: Profile,
    ) -> TasteCommonalities:
        interests: List[str] = []
        affinity: List[Entity] = []

        # a. Group comparison; failures propagate to the candidate boundary
        ids_a = employee_signals.entity_ids(COMPARE_ENTITY_LIMIT)
        ids_b = candidate_signals.entity_ids(COMPARE_ENTITY_LIMIT)
        if ids_a and ids_b:
            compared = await self.qloo.compare_groups(ids_a, ids_b)
            for entity in compared[:COMPARE_TOP_N]:
                interests.append(f"Both might enjoy: {entity.name}")
                affinity.append(entity)

        # b. Biased recommendation pass
        for entity in await self._biased_recommendations(employee_signals, candidate_signals, employee):
            interests.append(f"Shared affinity for: {entity.name}")
            affinity.append(entity)

        # c. Category overlap
        for category in _overlap(
            [e.category for e in employee_signals.entities],
            [e.category for e in candidate_signals.entities],
        ):
            interests.append(f"Shared interest in: {category}")

        # d. Tag-name overlap
        for tag_name in _overlap(
            [t.name for t in employee_signals.tags],
            [t.name for t in candidate_signals.tags],
        ):
            interests.append(f"Both associated with: {tag_name}")

        return TasteCommonalities(common_interests=_dedupe(interests), affinity_data=affinity)

    async def _biased_recommendations(
        self,
        employee_signals: SignalBag,
        candidate_signals: SignalBag,
        employee: Profile,
    ) -> List[Entity]:
        """Insight entities with affinity above threshold, first 3 kept."""
        entity_ids = (
            employee_signals.entity_ids(BIAS_EMPLOYEE_LIMIT)
            + candidate_signals.entity_ids(BIAS_CANDIDATE_LIMIT)
        )
        tag_ids = (
            employee_signals.tag_ids(BIAS_EMPLOYEE_LIMIT)
            + candidate_signals.tag_ids(BIAS_CANDIDATE_LIMIT)
        )
        if not entity_ids and not tag_ids:
            return []

        signal = InsightSignal(
            entity_ids=entity_ids,
            tag_ids=tag_ids,
            age=map_age_range(employee.age_range) if employee.age_range else None,
            gender=map_gender(employee.gender_identity) if employee.gender_identity else None,
            location=employee.location or None,
        )
        try:
            results = await self.qloo.get_insights(
                EntityURN.BRAND, signal, take=BIAS_TAKE, explainability=True
            )
        except Exception as e:
            logger.warning(f"Biased insights failed for {employee.name}: {e}")
            return []

        kept = [
            e for e in results
            if e.affinity is not None and e.affinity > BIAS_AFFINITY_THRESHOLD
        ]
        return kept[:BIAS_TOP_N]

    async def generate_insight(
        self,
        employee: Profile,
        candidate: Profile,
        taste: TasteCommonalities,
        workplace: Sequence[str],
    ) -> str:
        prompt = build_insight_prompt(employee, candidate, taste, workplace)
        try:
            return await self.text_generator.generate(
                prompt,
                temperature=Config.INSIGHT_TEMPERATURE,
                max_tokens=INSIGHT_MAX_TOKENS,
            )
        except TextGenerationError as e:
            logger.warning(f"Insight generation failed, using template: {e}")
            return fallback_insight(employee, candidate, workplace)
