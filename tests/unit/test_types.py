"""
Unit tests for src/common/types.py

Covers payload normalization for taste-graph records and profile merging.
"""

import pytest
from pydantic import ValidationError

from src.common.types import CommonalityResult, Entity, Profile, SignalBag, Tag
from tests.helpers.builders import make_entity, make_profile


class TestProfile:
    def test_accepts_camel_case_keys(self):
        profile = Profile.model_validate({
            "name": "Ana",
            "culturalHeritage": "Brazilian",
            "ageRange": "25-29",
            "genderIdentity": "woman",
            "id": 42,
        })

        assert profile.cultural_heritage == ["Brazilian"]
        assert profile.age_range == "25-29"
        assert profile.gender_identity == "woman"
        assert profile.id == "42"

    def test_null_fields_coerced(self):
        profile = Profile.model_validate({"name": None, "role": None, "culturalHeritage": None})

        assert profile.name == ""
        assert profile.role == ""
        assert profile.cultural_heritage == []

    def test_enriched_with_only_overrides_present_values(self):
        base = make_profile(location="Lisbon", cultural_heritage=["Portuguese"])
        record = Profile(name="Other", location="", age_range="30-34")

        merged = base.enriched_with(record)

        assert merged.name == base.name
        assert merged.location == "Lisbon"
        assert merged.cultural_heritage == ["Portuguese"]
        assert merged.age_range == "30-34"

    def test_enriched_with_none(self):
        base = make_profile()

        assert base.enriched_with(None) is base


class TestEntity:
    def test_normalizes_insight_payload(self):
        entity = Entity.model_validate({
            "entity_id": "E1",
            "name": "Blue Note",
            "subtype": "urn:entity:place",
            "query": {"affinity": 0.91},
            "metadata": {"description": "Jazz club"},
        })

        assert entity.id == "E1"
        assert entity.category == "urn:entity:place"
        assert entity.affinity == 0.91
        assert entity.description == "Jazz club"

    def test_category_from_types(self):
        entity = Entity.model_validate({"id": "E2", "name": None, "types": ["urn:entity:artist"]})

        assert entity.category == "urn:entity:artist"
        assert entity.name == ""

    def test_tag_normalization(self):
        tag = Tag.model_validate({"tag_id": "urn:tag:genre:jazz", "name": "Jazz", "subtype": "urn:tag:genre"})

        assert tag.id == "urn:tag:genre:jazz"
        assert tag.type == "urn:tag:genre"


class TestSignalBag:
    def test_ids_skip_missing_within_limit(self):
        bag = SignalBag(entities=[make_entity("a"), make_entity(None), make_entity("c"), make_entity("d")])

        assert bag.entity_ids(3) == ["a", "c"]
        assert bag.tag_ids(3) == []


class TestCommonalityResult:
    @pytest.mark.parametrize("score", [-0.1, 1.1])
    def test_score_bounds(self, score):
        with pytest.raises(ValidationError):
            CommonalityResult(person_name="Bo", connection_score=score)
