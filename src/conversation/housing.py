"""
Housing recommendations: intent detection, text extraction helpers and the
taste-graph + LLM pipeline that answers a "where should I live" request.

Extraction is keyword / regex based. The recommender raises on taste-graph
failure so the conversation controller can degrade the reply; the response
generator always has a templated fallback.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.clients.qloo_client import EntityURN, InsightSignal, QlooClient
from src.clients.text_generator import TextGenerator
from src.common.config import Config
from src.common.error_handling import TextGenerationError
from src.common.types import Demographics, Entity

logger = logging.getLogger(__name__)

HOUSING_KEYWORDS = [
    "where", "live", "living", "housing", "home", "house", "apartment",
    "rent", "neighborhood", "area", "move", "moving", "relocate",
    "from", "based", "located", "stay", "reside", "residence",
]

QUERY_PREFERENCE_KEYWORDS = [
    "quiet", "vibrant", "family-friendly", "urban", "suburban", "rural",
    "walkable", "safe", "affordable", "upscale", "diverse", "cultural",
]

PREFERENCE_KEYWORDS = [
    "quiet", "vibrant", "family-friendly", "family friendly", "urban", "suburban",
    "rural", "walkable", "safe", "affordable", "upscale", "diverse", "cultural",
    "nightlife", "restaurants", "parks", "schools", "transit", "trendy",
    "historic", "modern", "green", "artsy", "professional", "student-friendly",
    "pet-friendly", "lively", "peaceful",
]

QUERY_ETHNICITIES = ["asian", "hispanic", "latino", "black", "african american", "white", "caucasian"]

ETHNICITY_KEYWORDS: Dict[str, List[str]] = {
    "asian": ["asian", "chinese", "japanese", "korean", "indian", "filipino"],
    "hispanic": ["hispanic", "latino", "latina", "latinx", "mexican", "spanish"],
    "black": ["black", "african american", "african"],
    "white": ["white", "caucasian", "european"],
    "middle eastern": ["middle eastern", "arab", "persian"],
    "pacific islander": ["pacific islander", "hawaiian", "polynesian"],
}

_PLACE = r"([A-Z][a-zA-Z\s]+(?:,\s*[A-Z]{2})?)"

LOCATION_PATTERNS = [
    re.compile(rf"(?:in|at|near|around|to|from)\s+{_PLACE}", re.IGNORECASE),
    re.compile(rf"{_PLACE}\s*$", re.IGNORECASE),
    re.compile(rf"^{_PLACE}", re.IGNORECASE),
]

QUERY_LOCATION_PATTERNS = [
    re.compile(rf"(?:in|to|near|around)\s+{_PLACE}", re.IGNORECASE),
    re.compile(rf"{_PLACE}\s+(?:area|neighborhood|region)", re.IGNORECASE),
]

LOCATION_STOPWORDS = {"I", "Im", "My", "The", "A", "An"}

KNOWN_CITIES = [
    "New York", "NYC", "Los Angeles", "LA", "Chicago", "Houston", "Phoenix",
    "Philadelphia", "San Antonio", "San Diego", "Dallas", "San Jose",
    "Austin", "Jacksonville", "San Francisco", "SF", "Boston", "Seattle",
    "Denver", "Washington DC", "DC", "Miami", "Atlanta", "Oakland",
    "Portland", "Las Vegas", "Detroit", "Memphis", "Nashville",
]

QUERY_AGE_PATTERN = re.compile(r"\b(\d{2})\s*(?:-|to)?\s*(\d{2})?\s*(?:years?\s*old|yr)", re.IGNORECASE)
AGE_PATTERN = re.compile(r"\b(\d{1,2})\s*(?:years?\s*old|yo)\b", re.IGNORECASE)
WKT_PATTERN = re.compile(r"POINT\([^)]+\)")

INSIGHTS_TAKE = 20
SEARCH_LIMIT = 15
PROMPT_RECOMMENDATIONS = 10
PROMPT_SEARCH_RESULTS = 5
WKT_MAX_TOKENS = 50
RESPONSE_MAX_TOKENS = 600


class ParsedHousingQuery(BaseModel):
    is_housing_query: bool
    location: Optional[str] = None
    demographics: Optional[Demographics] = None
    preferences: Optional[List[str]] = None


class HousingQuery(BaseModel):
    """Parameters for one recommendation request."""
    location: Optional[str] = None
    current_area: Optional[str] = None  # WKT
    age_range: Optional[str] = None
    ethnicity: Optional[str] = None
    preferences: List[str] = Field(default_factory=list)


@dataclass
class HousingData:
    recommendations: List[Entity] = field(default_factory=list)
    search_results: List[Entity] = field(default_factory=list)
    preferences: List[str] = field(default_factory=list)


def parse_housing_query(text: str) -> ParsedHousingQuery:
    """Detect housing intent and pull out whatever context the text carries."""
    lower = text.lower()
    if not any(keyword in lower for keyword in HOUSING_KEYWORDS):
        return ParsedHousingQuery(is_housing_query=False)

    location = None
    for pattern in QUERY_LOCATION_PATTERNS:
        match = pattern.search(text)
        if match:
            location = match.group(1).strip()
            break

    age = None
    age_match = QUERY_AGE_PATTERN.search(text)
    if age_match:
        age = f"{age_match.group(1)}-{age_match.group(2)}" if age_match.group(2) else age_match.group(1)

    ethnicity = next((e for e in QUERY_ETHNICITIES if e in lower), None)
    preferences = [p for p in QUERY_PREFERENCE_KEYWORDS if p in lower]

    return ParsedHousingQuery(
        is_housing_query=True,
        location=location,
        demographics=Demographics(age=age, ethnicity=ethnicity) if (age or ethnicity) else None,
        preferences=preferences or None,
    )


def extract_location(text: str) -> Optional[str]:
    """Regex patterns first, then the known-city gazetteer."""
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text)
        if match:
            location = match.group(1).strip()
            if location not in LOCATION_STOPWORDS:
                return location

    lower = text.lower()
    for city in KNOWN_CITIES:
        if city.lower() in lower:
            return city
    return None


def extract_demographics(text: str) -> Demographics:
    demographics = Demographics()

    age_match = AGE_PATTERN.search(text)
    if age_match:
        demographics.age = age_match.group(1)

    lower = text.lower()
    for ethnicity, keywords in ETHNICITY_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            demographics.ethnicity = ethnicity
            break

    return demographics


def extract_preferences(text: str) -> List[str]:
    lower = text.lower()
    return [
        pref for pref in PREFERENCE_KEYWORDS
        if pref.replace("-", " ", 1) in lower or pref in lower
    ]


def to_housing_age_group(age_range: Optional[str]) -> Optional[str]:
    """Map "25", "25-29", "31", ... onto the place-insights age groups."""
    if not age_range:
        return None
    if age_range in ("25-29", "25"):
        return "25_to_29"

    try:
        age = int(age_range.split("-")[0].strip().rstrip("+"))
    except ValueError:
        return "25_to_29"

    if age <= 24:
        return "24_and_younger"
    if age <= 29:
        return "25_to_29"
    if age <= 34:
        return "30_to_34"
    if age <= 44:
        return "35_to_44"
    if age <= 54:
        return "45_to_54"
    return "55_and_older"


def build_housing_prompt(user_query: str, query: HousingQuery, data: HousingData) -> str:
    prompt = (
        "You are a knowledgeable housing and neighborhood advisor. Based on the user's query "
        "and demographic data, provide personalized housing recommendations.\n\n"
        f'User Query: "{user_query}"\n'
    )
    if query.location:
        prompt += f"Target Location: {query.location}\n"
    if query.age_range:
        prompt += f"Age Range: {query.age_range}\n"
    if query.ethnicity:
        prompt += f"Ethnicity/Cultural Background: {query.ethnicity}\n"
    if query.preferences:
        prompt += f"Preferences: {', '.join(query.preferences)}\n"

    prompt += "\nNeighborhood Data:\n"

    if data.recommendations:
        prompt += "Recommended Areas Based on Demographics:\n"
        for index, place in enumerate(data.recommendations[:PROMPT_RECOMMENDATIONS], start=1):
            line = f"{index}. {place.name}"
            if place.description:
                line += f" - {place.description}"
            if place.affinity:
                line += f" (Affinity Score: {place.affinity * 100:.0f}%)"
            prompt += line + "\n"

    if data.search_results:
        prompt += "\nAdditional Neighborhood Options:\n"
        for index, place in enumerate(data.search_results[:PROMPT_SEARCH_RESULTS], start=1):
            prompt += f"{index}. {place.name}\n"

    if data.preferences:
        prompt += f"\nUser specifically mentioned preferences for: {', '.join(data.preferences)}\n"

    prompt += (
        "\nInstructions:\n"
        "1. Provide a warm, conversational response that directly addresses their housing query\n"
        "2. If they asked where you're from, politely redirect to helping them find housing\n"
        "3. Recommend 3-4 specific neighborhoods or areas with brief explanations\n"
        "4. Consider their demographics (age, ethnicity) to suggest culturally relevant areas\n"
        "5. Mention practical factors like commute, amenities, and community features\n"
        "6. Be helpful and encouraging about their housing search\n"
        "7. If data is limited, acknowledge this and provide general advice\n"
        "8. Keep the response concise but informative (3-4 paragraphs)\n\n"
        "Response:"
    )
    return prompt


def fallback_housing_response(query: HousingQuery) -> str:
    response = "I'd be happy to help you find housing information"
    if query.location:
        response += f" in {query.location}"
    response += ". While I'm having trouble accessing specific neighborhood data at the moment, "
    if query.preferences:
        response += f"based on your preferences for {', '.join(query.preferences)} areas, "
    response += (
        "I recommend researching neighborhoods that match your lifestyle needs. "
        "Consider factors like commute time, local amenities, "
    )
    if query.ethnicity:
        response += "cultural communities, "
    response += "and housing costs. Would you like me to help you with any specific questions about finding housing?"
    return response


class HousingRecommender:
    """
    Neighborhood recommendations from the taste graph, phrased by an LLM.

    Args:
        qloo: Taste-graph client
        text_generator: Used for location -> WKT conversion and the reply
    """

    def __init__(self, qloo: QlooClient, text_generator: TextGenerator):
        self.qloo = qloo
        self.text_generator = text_generator

    async def location_to_wkt(self, location: str) -> Optional[str]:
        """Best-effort WKT POINT for a place name; None when unavailable."""
        prompt = (
            "Convert the following location to WKT POINT format (longitude latitude).\n"
            "Only respond with the WKT point string, nothing else.\n"
            "Examples:\n"
            "- New York City -> POINT(-74.006 40.7128)\n"
            "- San Francisco -> POINT(-122.4194 37.7749)\n"
            "- Chicago -> POINT(-87.6298 41.8781)\n\n"
            f"Location: {location}"
        )
        try:
            text = await self.text_generator.generate(
                prompt,
                temperature=Config.ANALYTICAL_TEMPERATURE,
                max_tokens=WKT_MAX_TOKENS,
            )
        except TextGenerationError as e:
            logger.warning(f"Error converting location to WKT: {e}")
            return None
        match = WKT_PATTERN.search(text)
        return match.group(0) if match else None

    async def get_recommendations(self, query: HousingQuery) -> HousingData:
        """Place insights plus a neighborhood search. Taste-graph errors propagate."""
        wkt = await self.location_to_wkt(query.location) if query.location else None
        if wkt:
            logger.info(f'Converted location "{query.location}" to WKT: {wkt}')

        signal = InsightSignal(
            age=to_housing_age_group(query.age_range),
            audiences=[query.ethnicity] if query.ethnicity else [],
            location=wkt or query.current_area,
        )
        recommendations = await self.qloo.get_insights(
            EntityURN.PLACE, signal, take=INSIGHTS_TAKE, explainability=True
        )

        search_query = f"{query.location or ''} neighborhoods residential areas {' '.join(query.preferences)}".strip()
        search_results = await self.qloo.search(search_query, types=["place"], limit=SEARCH_LIMIT)

        return HousingData(
            recommendations=recommendations,
            search_results=search_results,
            preferences=list(query.preferences),
        )

    async def generate_response(self, user_query: str, query: HousingQuery, data: HousingData) -> str:
        prompt = build_housing_prompt(user_query, query, data)
        try:
            return await self.text_generator.generate(
                prompt,
                temperature=Config.CREATIVE_TEMPERATURE,
                max_tokens=RESPONSE_MAX_TOKENS,
            )
        except TextGenerationError as e:
            logger.warning(f"Error generating housing response: {e}")
            return fallback_housing_response(query)
