"""
Canonical Types and Schemas for the culture-connect service

Every payload that crosses a collaborator boundary (taste graph, directory,
transport, state store, HTTP) is narrowed into one of these pydantic models
before it reaches the scoring or conversation logic.
"""

from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Profile(BaseModel):
    """
    A person-like entity: the new employee or a candidate colleague.

    Accepts both snake_case and the camelCase keys used by the directory
    and the introductions webhook.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    role: str = ""
    department: str = ""
    location: Optional[str] = None
    cultural_heritage: List[str] = Field(default_factory=list, alias="culturalHeritage")
    age_range: Optional[str] = Field(default=None, alias="ageRange")
    gender_identity: Optional[str] = Field(default=None, alias="genderIdentity")
    team_id: Optional[str] = Field(default=None, alias="teamId")

    # Fields a directory record may contribute to an existing profile
    ENRICHMENT_FIELDS: ClassVar[Tuple[str, ...]] = ("location", "cultural_heritage", "age_range", "gender_identity")

    @field_validator("cultural_heritage", mode="before")
    @classmethod
    def coerce_heritage(cls, v):
        """Directory rows may hold null or a single string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v

    @field_validator("name", "role", "department", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else v

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return None if v is None else str(v)

    def enriched_with(self, other: Optional["Profile"]) -> "Profile":
        """
        Merge enrichment fields from a secondary lookup.

        A field from ``other`` only overrides when present and non-empty.
        """
        if other is None:
            return self
        updates: Dict[str, Any] = {}
        for field_name in self.ENRICHMENT_FIELDS:
            value = getattr(other, field_name)
            if value:
                updates[field_name] = value
        return self.model_copy(update=updates) if updates else self


class Entity(BaseModel):
    """A named item in the taste graph (artist, place, brand, ...)."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = ""
    category: Optional[str] = None
    popularity: Optional[float] = None
    affinity: Optional[float] = None
    description: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_payload(cls, data: Any) -> Any:
        """
        Normalize the shapes returned by the search, insights and compare
        endpoints into one flat record.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id") and data.get("entity_id"):
            data["id"] = data["entity_id"]
        if data.get("affinity") is None:
            query = data.get("query")
            if isinstance(query, dict) and query.get("affinity") is not None:
                data["affinity"] = query["affinity"]
        if not data.get("category"):
            types = data.get("types")
            if data.get("subtype"):
                data["category"] = data["subtype"]
            elif isinstance(types, list) and types:
                data["category"] = types[0]
        if not data.get("description"):
            metadata = data.get("metadata")
            if isinstance(metadata, dict) and metadata.get("description"):
                data["description"] = metadata["description"]
        if data.get("name") is None:
            data["name"] = ""
        return data


class Tag(BaseModel):
    """A categorical label attachable to entities."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = ""
    type: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def normalize_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not data.get("id") and data.get("tag_id"):
            data["id"] = data["tag_id"]
        if not data.get("type") and data.get("subtype"):
            data["type"] = data["subtype"]
        if data.get("name") is None:
            data["name"] = ""
        return data


class SignalBag(BaseModel):
    """Matched entities and tags gathered for one profile in one scoring cycle."""
    entities: List[Entity] = Field(default_factory=list)
    tags: List[Tag] = Field(default_factory=list)

    def entity_ids(self, limit: int) -> List[str]:
        """Non-null ids among the first ``limit`` entities."""
        return [e.id for e in self.entities[:limit] if e.id]

    def tag_ids(self, limit: int) -> List[str]:
        """Non-null ids among the first ``limit`` tags."""
        return [t.id for t in self.tags[:limit] if t.id]


class TasteCommonalities(BaseModel):
    """Taste-derived commonality statements plus the raw affinity dataset."""
    common_interests: List[str] = Field(default_factory=list)
    affinity_data: List[Entity] = Field(default_factory=list)


class CommonalityResult(BaseModel):
    """Per-candidate scoring output. The score is always present."""
    person_id: Optional[str] = None
    person_name: str
    commonalities: List[str] = Field(default_factory=list)
    insight: str = ""
    connection_score: float = Field(..., ge=0.0, le=1.0)


class RankedCandidate(BaseModel):
    """A candidate profile annotated with its commonality result."""
    profile: Profile
    result: CommonalityResult
    # Index of the candidate in the scored input list
    position: int = 0

    @property
    def score(self) -> float:
        return self.result.connection_score


class ConversationStage(str, Enum):
    """Stages of the housing dialogue."""
    DETECTED = "detected"
    AWAITING_LOCATION = "awaiting_location"
    AWAITING_PREFERENCES = "awaiting_preferences"
    COMPLETE = "complete"


class Demographics(BaseModel):
    age: Optional[str] = None
    ethnicity: Optional[str] = None


class ConversationState(BaseModel):
    """Persisted progress through the housing dialogue (epoch-ms timestamp)."""
    stage: ConversationStage
    location: Optional[str] = None
    demographics: Optional[Demographics] = None
    preferences: Optional[List[str]] = None
    timestamp: int


class ConversationReply(BaseModel):
    """Reply text plus whether the dialogue expects another turn."""
    response: str
    continue_flow: bool


class DeliveryChannel(str, Enum):
    """Delivery routes tried by the dispatch chain, in order."""
    ASSIGNED_IDENTITY = "assigned_identity"
    CONTACT_LOOKUP = "contact_lookup"
    DEFAULT_CHANNEL = "default_channel"
    NONE = "none"


class DeliveryAttempt(BaseModel):
    channel: DeliveryChannel
    target: Optional[str] = None
    success: bool
    error: Optional[str] = None


class DeliveryStatus(str, Enum):
    SENT = "sent"
    SENT_TO_DEFAULT = "sent_to_default"
    FAILED = "failed"


class DeliveryReport(BaseModel):
    """Outcome of one candidate's dispatch chain."""
    person: str
    status: DeliveryStatus
    channel: str
    message: Optional[str] = None
    attempts: List[DeliveryAttempt] = Field(default_factory=list)
    error: Optional[str] = None


class ChatMessage(BaseModel):
    """One turn of stored conversation history."""
    role: str  # "user" | "assistant"
    content: str
    timestamp: int
