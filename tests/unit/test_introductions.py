"""
Unit tests for src/matching/introductions.py
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.common.error_handling import DirectoryError, TextGenerationError
from src.common.types import CommonalityResult, DeliveryStatus, Profile, RankedCandidate
from src.dispatch.fallback_chain import DeliveryTargets, DispatchChain
from src.matching.introductions import IntroductionService, fallback_introduction
from tests.helpers.builders import make_profile


def _ranked(profile: Profile, score: float, position: int) -> RankedCandidate:
    return RankedCandidate(
        profile=profile,
        result=CommonalityResult(
            person_name=profile.name,
            commonalities=["Both work in Engineering"],
            insight=f"{profile.name} also loves jazz.",
            connection_score=score,
        ),
        position=position,
    )


@pytest.fixture
def scorer():
    scorer = MagicMock()
    scorer.score_and_rank = AsyncMock(return_value=[])
    return scorer


@pytest.fixture
def directory():
    directory = MagicMock()
    directory.get_profile_by_contact = AsyncMock(return_value=None)
    return directory


def _service(scorer, directory, text_generator, transport, targets=None, top_n=3):
    return IntroductionService(
        scorer=scorer,
        directory=directory,
        text_generator=text_generator,
        dispatch=DispatchChain(transport, targets or DeliveryTargets()),
        top_n=top_n,
    )


class TestEnrich:
    @pytest.mark.asyncio
    async def test_without_directory(self, scorer, mock_text_generator, mock_transport):
        service = _service(scorer, None, mock_text_generator, mock_transport)
        profile = make_profile(email="ana@example.com")

        assert await service.enrich(profile) is profile

    @pytest.mark.asyncio
    async def test_overlays_directory_fields(self, scorer, directory, mock_text_generator, mock_transport):
        directory.get_profile_by_contact.return_value = Profile(
            name="Ana L.", location="London, UK", culturalHeritage=["Brazilian"], ageRange="30-34"
        )
        service = _service(scorer, directory, mock_text_generator, mock_transport)

        enriched = await service.enrich(make_profile(name="Ana Lima", email="ana@example.com"))

        assert enriched.name == "Ana Lima"
        assert enriched.location == "London, UK"
        assert enriched.cultural_heritage == ["Brazilian"]
        assert enriched.age_range == "30-34"

    @pytest.mark.asyncio
    async def test_directory_error_keeps_raw_profile(self, scorer, directory, mock_text_generator, mock_transport):
        directory.get_profile_by_contact.side_effect = DirectoryError("notion down")
        service = _service(scorer, directory, mock_text_generator, mock_transport)
        profile = make_profile(email="ana@example.com")

        assert await service.enrich(profile) is profile

    @pytest.mark.asyncio
    async def test_no_email_skips_lookup(self, scorer, directory, mock_text_generator, mock_transport):
        service = _service(scorer, directory, mock_text_generator, mock_transport)

        await service.enrich(make_profile())

        directory.get_profile_by_contact.assert_not_awaited()


class TestComposeMessage:
    @pytest.mark.asyncio
    async def test_generated_message(self, scorer, mock_text_generator, mock_transport):
        service = _service(scorer, None, mock_text_generator, mock_transport)

        message = await service.compose_message(make_profile(name="Ana"), _ranked(make_profile(name="Bo"), 0.5, 0))

        assert message == "They both love live jazz."
        kwargs = mock_text_generator.generate.await_args.kwargs
        assert kwargs == {"temperature": 0.8, "max_tokens": 200}

    @pytest.mark.asyncio
    async def test_fallback_template(self, scorer, mock_text_generator, mock_transport):
        mock_text_generator.generate.side_effect = TextGenerationError("down")
        service = _service(scorer, None, mock_text_generator, mock_transport)
        employee = make_profile(name="Ana", role="Data Engineer", department="Platform")

        message = await service.compose_message(employee, _ranked(make_profile(name="Bo"), 0.5, 0))

        assert message == (
            "Hey Bo, wanted to introduce you to Ana who's joining as Data Engineer in Platform. "
            "Bo also loves jazz."
        )
        assert message == fallback_introduction(employee, make_profile(name="Bo"), "Bo also loves jazz.")


class TestIntroduce:
    @pytest.mark.asyncio
    async def test_introduces_top_candidates(self, scorer, mock_text_generator, mock_transport):
        """Should message only the top_n ranked candidates, in rank order."""
        people = [make_profile(name=n) for n in ("Bo", "Cy", "Di")]
        scorer.score_and_rank.return_value = [
            _ranked(people[2], 0.9, 2), _ranked(people[0], 0.5, 0), _ranked(people[1], 0.1, 1),
        ]
        service = _service(
            scorer, None, mock_text_generator, mock_transport,
            targets=DeliveryTargets(assigned_identities=["U1", "U2"]), top_n=2,
        )

        outcome = await service.introduce(make_profile(name="Ana"), people)

        assert [r.profile.name for r in outcome.people] == ["Di", "Bo", "Cy"]
        assert [m.person for m in outcome.messages] == ["Di", "Bo"]
        assert [m.channel for m in outcome.messages] == ["DM to U1", "DM to U2"]
        assert outcome.enhanced_at
        assert mock_text_generator.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_default_channel_override(self, scorer, mock_text_generator, mock_transport):
        people = [make_profile(name="Bo")]
        scorer.score_and_rank.return_value = [_ranked(people[0], 0.4, 0)]
        service = _service(scorer, None, mock_text_generator, mock_transport)

        outcome = await service.introduce(make_profile(name="Ana"), people, default_channel="#welcome")

        assert outcome.messages[0].status == DeliveryStatus.SENT_TO_DEFAULT
        assert outcome.messages[0].channel == "#welcome"
        assert service.dispatch.targets.default_channel is None

    @pytest.mark.asyncio
    async def test_employee_team_id_reaches_say_hi_link(self, scorer, mock_text_generator, mock_transport):
        people = [make_profile(name="Bo")]
        scorer.score_and_rank.return_value = [_ranked(people[0], 0.4, 0)]
        service = _service(
            scorer, None, mock_text_generator, mock_transport,
            targets=DeliveryTargets(assigned_identities=["U9"]),
        )

        await service.introduce(Profile.model_validate({"name": "Ana", "teamId": "T7"}), people)

        blocks = mock_transport.post_message.await_args.kwargs["blocks"]
        assert blocks[1]["elements"][0]["url"] == "slack://user?team=T7&id=U9"

    @pytest.mark.asyncio
    async def test_undeliverable_is_reported(self, scorer, mock_text_generator, mock_transport):
        people = [make_profile(name="Bo")]
        scorer.score_and_rank.return_value = [_ranked(people[0], 0.4, 0)]
        service = _service(scorer, None, mock_text_generator, mock_transport)

        outcome = await service.introduce(make_profile(name="Ana"), people)

        assert outcome.messages[0].status == DeliveryStatus.FAILED
        assert len(outcome.people) == 1
