"""
Introduction flow for a new employee.

enrich (directory) -> score + rank -> personalised message -> dispatch chain

Directory and text-generation failures degrade to the raw profile and a
templated message; delivery failures are recorded per candidate.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from src.clients.notion_directory import NotionDirectory
from src.clients.text_generator import TextGenerator
from src.common.config import Config
from src.common.error_handling import TextGenerationError
from src.common.logger import get_logger
from src.common.types import DeliveryReport, DeliveryStatus, Profile, RankedCandidate
from src.dispatch.fallback_chain import DispatchChain, OutboundMessage
from src.matching.commonality_scorer import CommonalityScorer

logger = logging.getLogger(__name__)

MESSAGE_MAX_TOKENS = 200


@dataclass
class IntroductionOutcome:
    people: List[RankedCandidate]
    messages: List[DeliveryReport] = field(default_factory=list)
    enhanced_at: str = ""


def build_introduction_prompt(employee: Profile, candidate: Profile, insight: str, commonalities: Sequence[str]) -> str:
    heritage = (
        f"Cultural background: {', '.join(employee.cultural_heritage)}\n"
        if employee.cultural_heritage else ""
    )
    return (
        f"You're introducing {employee.name} to {candidate.name}. "
        f"Write as if you're a colleague who knows both people well.\n\n"
        f"New employee: {employee.name}, {employee.role} in {employee.department}, "
        f"{employee.location or 'location unknown'}\n"
        f"{heritage}"
        f"Colleague: {candidate.name}, {candidate.role}\n\n"
        f"Connection insight: {insight}\n"
        f"Commonalities: {', '.join(commonalities)}\n\n"
        f"Write 2-3 sentences in this format: Start with something like \"Hey [person name], "
        f"wanted to introduce you to [employee name] who's joining...\" Then mention specific "
        f"personal interests they share (music, food, hobbies) along with any work synergies. "
        f"Sound natural and conversational, like you're making a thoughtful introduction between "
        f"two people who would genuinely click.\n\n"
        f"DO NOT include any preamble, quotes, or meta-text. Start the message directly."
    )


def fallback_introduction(employee: Profile, candidate: Profile, insight: str) -> str:
    return (
        f"Hey {candidate.name}, wanted to introduce you to {employee.name} who's joining as "
        f"{employee.role} in {employee.department}. {insight}"
    )


class IntroductionService:
    """
    Finds the best-matched colleagues for a new employee and introduces them.

    Args:
        scorer: Commonality scorer
        directory: Optional employee directory used for enrichment
        text_generator: Writes the personalised introductions
        dispatch: Delivery chain for the top ``top_n`` candidates
        top_n: Number of candidates who receive an introduction
    """

    def __init__(
        self,
        scorer: CommonalityScorer,
        directory: Optional[NotionDirectory],
        text_generator: TextGenerator,
        dispatch: DispatchChain,
        top_n: Optional[int] = None,
    ):
        self.scorer = scorer
        self.directory = directory
        self.text_generator = text_generator
        self.dispatch = dispatch
        self.top_n = top_n if top_n is not None else Config.INTRODUCTION_TOP_N

    async def enrich(self, profile: Profile) -> Profile:
        """Overlay directory fields; the raw profile stands on any failure."""
        if self.directory is None or not profile.email:
            return profile
        try:
            record = await self.directory.get_profile_by_contact(profile.email)
        except Exception as e:
            logger.warning(f"Error fetching {profile.name} from directory: {e}")
            return profile
        return profile.enriched_with(record)

    async def compose_message(self, employee: Profile, ranked: RankedCandidate) -> str:
        insight = ranked.result.insight
        prompt = build_introduction_prompt(
            employee, ranked.profile, insight, ranked.result.commonalities
        )
        try:
            return await self.text_generator.generate(
                prompt,
                temperature=Config.CREATIVE_TEMPERATURE,
                max_tokens=MESSAGE_MAX_TOKENS,
            )
        except TextGenerationError as e:
            logger.warning(f"Error generating personalized message for {ranked.profile.name}: {e}")
            return fallback_introduction(employee, ranked.profile, insight)

    async def introduce(
        self,
        employee: Profile,
        people: Sequence[Profile],
        default_channel: Optional[str] = None,
    ) -> IntroductionOutcome:
        run_log = get_logger(__name__, run_id=uuid.uuid4().hex, component="introductions")
        run_log.info(f"Finding commonalities for {employee.name} with {len(people)} people")

        enriched_employee = await self.enrich(employee)
        enriched_people = [await self.enrich(person) for person in people]

        ranked = await self.scorer.score_and_rank(enriched_employee, enriched_people)
        enhanced_at = datetime.now(timezone.utc).isoformat()

        outbound = [
            OutboundMessage(
                candidate=item.profile,
                message=await self.compose_message(enriched_employee, item),
                commonalities=item.result.commonalities,
            )
            for item in ranked[:self.top_n]
        ]

        dispatch = self.dispatch
        if default_channel:
            dispatch = DispatchChain(
                self.dispatch.transport,
                self.dispatch.targets.with_default_channel(default_channel),
            )
        reports = await dispatch.deliver_all(
            outbound, employee_name=enriched_employee.name, team_id=enriched_employee.team_id
        )

        sent = sum(1 for r in reports if r.status != DeliveryStatus.FAILED)
        run_log.info(f"Delivered {sent}/{len(reports)} introductions for {employee.name}")
        return IntroductionOutcome(people=ranked, messages=reports, enhanced_at=enhanced_at)
