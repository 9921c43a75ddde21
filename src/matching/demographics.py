"""
Demographic bracket tables used to bias taste-graph insight requests.
"""

from typing import Dict, Optional

# Directory age range -> taste-graph age bucket
AGE_RANGE_MAP: Dict[str, str] = {
    "20-24": "18_to_24",
    "25-29": "25_to_35",
    "30-34": "25_to_35",
    "35-39": "36_to_55",
    "40-44": "36_to_55",
    "45-49": "36_to_55",
    "50-54": "36_to_55",
    "55+": "56_plus",
}
DEFAULT_AGE_BUCKET = "25_to_35"

# The taste graph only accepts two values; anything unrecognized maps here.
DEFAULT_GENDER = "female"


def map_age_range(age_range: Optional[str]) -> str:
    """Map a directory age range to a taste-graph age bucket."""
    return AGE_RANGE_MAP.get((age_range or "").strip(), DEFAULT_AGE_BUCKET)


def map_gender(gender_identity: str) -> str:
    """
    Map a free-text gender identity to ``male`` or ``female``.

    Exact matches win first, then substring checks in a fixed order
    (so "transwoman" lands on "male" because it contains "man").
    """
    lower = gender_identity.lower()

    if lower in ("male", "man"):
        return "male"
    if lower in ("female", "woman"):
        return "female"

    if "man" in lower or "male" in lower:
        return "male"
    if "woman" in lower or "female" in lower:
        return "female"

    return DEFAULT_GENDER
